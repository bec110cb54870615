from chatline.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.api_url == "http://localhost:4111"
    assert settings.agent_name == "weather-agent"
    assert settings.thread_id == "1"
    assert settings.resource_id == "booker"
    assert settings.timeout == 600.0


def test_stream_url_strips_trailing_slash():
    settings = Settings(api_url="http://agents.test/", agent_name="travel")
    assert settings.stream_url == "http://agents.test/api/agents/travel/stream"


def test_from_env(monkeypatch):
    monkeypatch.setenv("CHATLINE_API_URL", "http://agents.test")
    monkeypatch.setenv("CHATLINE_AGENT", "travel")
    monkeypatch.setenv("CHATLINE_THREAD", "t-9")
    monkeypatch.setenv("CHATLINE_TIMEOUT", "30")
    monkeypatch.delenv("CHATLINE_RESOURCE", raising=False)

    settings = Settings.from_env()

    assert settings.api_url == "http://agents.test"
    assert settings.agent_name == "travel"
    assert settings.thread_id == "t-9"
    assert settings.resource_id == "booker"
    assert settings.timeout == 30.0


def test_overrides_beat_env(monkeypatch):
    monkeypatch.setenv("CHATLINE_AGENT", "travel")
    settings = Settings.from_env(agent_name="weather-agent")
    assert settings.agent_name == "weather-agent"


def test_from_env_defaults(monkeypatch):
    for name in ("CHATLINE_API_URL", "CHATLINE_AGENT", "CHATLINE_THREAD",
                 "CHATLINE_RESOURCE", "CHATLINE_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    assert Settings.from_env() == Settings()

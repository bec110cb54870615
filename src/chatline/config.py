from __future__ import annotations

import os

from pydantic import BaseModel

DEFAULT_API_URL = "http://localhost:4111"
DEFAULT_AGENT = "weather-agent"


class Settings(BaseModel):
    """Connection settings for the agent server.

    Args:
        api_url: Base URL of the agent server.
        agent_name: Agent to stream from.
        thread_id: Memory thread the server keeps the conversation in.
        resource_id: Memory resource owning the thread.
        timeout: HTTP timeout in seconds.
    """

    api_url: str = DEFAULT_API_URL
    agent_name: str = DEFAULT_AGENT
    thread_id: str = "1"
    resource_id: str = "booker"
    timeout: float = 600.0

    @classmethod
    def from_env(cls, **overrides) -> Settings:
        """Build settings from ``CHATLINE_*`` environment variables.

        Keyword arguments take precedence over the environment.
        """
        values = {
            "api_url": os.getenv("CHATLINE_API_URL") or DEFAULT_API_URL,
            "agent_name": os.getenv("CHATLINE_AGENT") or DEFAULT_AGENT,
        }
        thread_id = os.getenv("CHATLINE_THREAD")
        if thread_id:
            values["thread_id"] = thread_id
        resource_id = os.getenv("CHATLINE_RESOURCE")
        if resource_id:
            values["resource_id"] = resource_id
        timeout = os.getenv("CHATLINE_TIMEOUT")
        if timeout:
            values["timeout"] = timeout
        values.update(overrides)
        return cls(**values)

    @property
    def stream_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/api/agents/{self.agent_name}/stream"

import asyncio

import pytest

from chatline.chunks import (
    TextDelta,
    ToolCallComplete,
    ToolCallDelta,
    ToolCallStart,
    ToolResult,
)
from chatline.controller import TurnController
from chatline.transport import Transport


# ---------------------------------------------------------------------------
# Scripted transport
# ---------------------------------------------------------------------------

class ScriptedTransport(Transport):
    """Transport that yields pre-queued chunks. No network calls.

    Args:
        chunks: Chunks delivered immediately.
        hold: After ``chunks``, set ``holding`` and wait for ``released``
            before delivering ``tail``.
        tail: Chunks delivered after release.
        error: Raised once every chunk has been delivered.
    """

    name = "scripted"

    def __init__(self, chunks=None, hold=False, tail=None, error=None):
        self.chunks = list(chunks or [])
        self.hold = hold
        self.tail = list(tail or [])
        self.error = error
        self.holding = asyncio.Event()
        self.released = asyncio.Event()
        self.calls: list[str] = []
        self.tokens = []
        self.closed = False

    async def stream(self, text, token):
        self.calls.append(text)
        self.tokens.append(token)
        try:
            for chunk in self.chunks:
                yield chunk
            if self.hold:
                self.holding.set()
                await self.released.wait()
            for chunk in self.tail:
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


# ---------------------------------------------------------------------------
# Chunk builders
# ---------------------------------------------------------------------------

def text_chunks(run_id: str, *fragments: str) -> list[TextDelta]:
    return [TextDelta(run_id=run_id, text=f) for f in fragments]


def weather_tool_chunks(
    run_id: str = "run_1", call_id: str = "call_1",
) -> list:
    """Full lifecycle of one ``get_weather`` tool call."""
    return [
        ToolCallStart(run_id=run_id, tool_call_id=call_id, tool_name="get_weather"),
        ToolCallDelta(run_id=run_id, tool_call_id=call_id, args_text_delta='{"city": '),
        ToolCallDelta(run_id=run_id, tool_call_id=call_id, args_text_delta='"London"}'),
        ToolCallComplete(
            run_id=run_id, tool_call_id=call_id, tool_name="get_weather",
            args={"city": "London"},
        ),
        ToolResult(
            run_id=run_id, tool_call_id=call_id, tool_name="get_weather",
            result={"temperature": 14, "conditions": "Overcast"},
        ),
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_controller():
    """Factory fixture returning ``(controller, transport)`` pairs."""
    def _make(**transport_kwargs):
        transport = ScriptedTransport(**transport_kwargs)
        return TurnController(transport), transport
    return _make


@pytest.fixture
def weather_chunks():
    return (
        text_chunks("run_1", "Let me check ")
        + weather_tool_chunks()
        + text_chunks("run_2", "It is 14°C ", "and overcast in London.")
    )

"""Chunk records produced by an agent backend's data stream.

Transports yield :class:`StreamChunk` objects.  :func:`parse_chunk`
decodes one wire record (``{"type", "runId", "payload"}``) into the
matching typed record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


@dataclass(frozen=True)
class StreamChunk:
    """Base for all chunk records."""

    kind: ClassVar[str] = ""

    run_id: str = ""


@dataclass(frozen=True)
class TextDelta(StreamChunk):
    """A fragment of assistant text for one run."""

    kind: ClassVar[str] = "text-delta"

    text: str | None = None


@dataclass(frozen=True)
class ToolCallStart(StreamChunk):
    """The model began streaming the input of a tool call."""

    kind: ClassVar[str] = "tool-call-input-streaming-start"

    tool_call_id: str | None = None
    tool_name: str | None = None


@dataclass(frozen=True)
class ToolCallDelta(StreamChunk):
    """A fragment of a tool call's raw JSON arguments."""

    kind: ClassVar[str] = "tool-call-delta"

    tool_call_id: str | None = None
    args_text_delta: str | None = None


@dataclass(frozen=True)
class ToolCallComplete(StreamChunk):
    """Arguments are complete and parsed; the tool is executing."""

    kind: ClassVar[str] = "tool-call"

    tool_call_id: str | None = None
    tool_name: str | None = None
    args: Any = None


@dataclass(frozen=True)
class ToolResult(StreamChunk):
    """The tool finished and produced a result."""

    kind: ClassVar[str] = "tool-result"

    tool_call_id: str | None = None
    tool_name: str | None = None
    result: Any = None
    is_error: bool = False


@dataclass(frozen=True)
class UnknownChunk(StreamChunk):
    """Any chunk kind this client does not understand."""

    type: str = ""
    payload: dict = field(default_factory=dict)


def _as_id(value) -> str | None:
    """Identifiers and names arrive as strings; coerce stray scalars."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_text(value) -> str | None:
    return value if isinstance(value, str) else None


def parse_chunk(data: dict) -> StreamChunk:
    """Decode a wire record into a typed chunk.

    Missing fields fall back to their defaults and unknown ``type``
    values produce an :class:`UnknownChunk`.  Fields of the wrong type
    are coerced or dropped so the reducer only ever sees strings where
    it expects them; nothing here raises on malformed input.
    """
    chunk_type = data.get("type") or ""
    run_id = _as_id(data.get("runId")) or ""
    payload = data.get("payload")
    if not isinstance(payload, dict):
        payload = {}

    if chunk_type == "text-delta":
        return TextDelta(run_id=run_id, text=_as_text(payload.get("text")))
    if chunk_type == "tool-call-input-streaming-start":
        return ToolCallStart(
            run_id=run_id,
            tool_call_id=_as_id(payload.get("toolCallId")),
            tool_name=_as_id(payload.get("toolName")),
        )
    if chunk_type == "tool-call-delta":
        return ToolCallDelta(
            run_id=run_id,
            tool_call_id=_as_id(payload.get("toolCallId")),
            args_text_delta=_as_text(payload.get("argsTextDelta")),
        )
    if chunk_type == "tool-call":
        return ToolCallComplete(
            run_id=run_id,
            tool_call_id=_as_id(payload.get("toolCallId")),
            tool_name=_as_id(payload.get("toolName")),
            args=payload.get("args"),
        )
    if chunk_type == "tool-result":
        return ToolResult(
            run_id=run_id,
            tool_call_id=_as_id(payload.get("toolCallId")),
            tool_name=_as_id(payload.get("toolName")),
            result=payload.get("result"),
            is_error=bool(payload.get("isError", False)),
        )
    return UnknownChunk(run_id=run_id, type=str(chunk_type), payload=payload)

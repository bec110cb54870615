"""Chunk reducer: ``(transcript, chunk) -> transcript``.

Pure and synchronous.  Every chunk kind maps to exactly one rule;
anything unrecognised leaves the transcript untouched so new chunk
kinds from the backend never break the client.

Tool chunks that arrive before their ``tool-call-input-streaming-start``
still create the tool call on demand, so nothing the backend reports is
dropped from view.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from chatline.chunks import (
    StreamChunk,
    TextDelta,
    ToolCallComplete,
    ToolCallDelta,
    ToolCallStart,
    ToolResult,
)
from chatline.transcript import (
    UNKNOWN_TOOL_NAME,
    AssistantRun,
    ToolCall,
    Transcript,
    TranscriptEntry,
)

logger = logging.getLogger(__name__)


def reduce(transcript: Transcript, chunk: StreamChunk) -> Transcript:
    """Apply one chunk and return the next transcript snapshot.

    A chunk whose fields cannot be applied is logged and skipped; the
    previous snapshot is returned unchanged.
    """
    try:
        return _apply(transcript, chunk)
    except (ValidationError, TypeError) as e:
        logger.warning(f"Skipping malformed {type(chunk).__name__}: {e}")
        return transcript


def _apply(transcript: Transcript, chunk: StreamChunk) -> Transcript:
    if isinstance(chunk, TextDelta):
        return _apply_text(transcript, chunk)
    if isinstance(chunk, ToolCallStart):
        return _apply_start(transcript, chunk)
    if isinstance(chunk, ToolCallDelta):
        return _apply_tool_update(
            transcript, chunk,
            lambda tc: tc.append_args(chunk.args_text_delta or ""),
        )
    if isinstance(chunk, ToolCallComplete):
        return _apply_tool_update(
            transcript, chunk,
            lambda tc: tc.complete_args(chunk.args),
        )
    if isinstance(chunk, ToolResult):
        return _apply_tool_update(
            transcript, chunk,
            lambda tc: tc.finish(chunk.result, is_error=chunk.is_error),
        )
    logger.debug(f"Ignoring unhandled chunk {chunk!r}")
    return transcript


def reduce_all(
    transcript: Transcript, chunks: Iterable[StreamChunk]
) -> Transcript:
    for chunk in chunks:
        transcript = reduce(transcript, chunk)
    return transcript


def _is_run(run_id: str):
    def match(entry: TranscriptEntry) -> bool:
        return isinstance(entry, AssistantRun) and entry.run_id == run_id
    return match


def _is_tool_call(tool_call_id: str):
    def match(entry: TranscriptEntry) -> bool:
        return (
            isinstance(entry, ToolCall)
            and entry.tool_call_id == tool_call_id
        )
    return match


def _apply_text(transcript: Transcript, chunk: TextDelta) -> Transcript:
    text = chunk.text or ""
    return transcript.upsert(
        _is_run(chunk.run_id),
        create=lambda: AssistantRun(run_id=chunk.run_id, content=text),
        update=lambda run: run.extend(text),
    )


def _new_tool_call(chunk) -> ToolCall:
    return ToolCall(
        run_id=chunk.run_id,
        tool_call_id=chunk.tool_call_id,
        tool_name=getattr(chunk, "tool_name", None) or UNKNOWN_TOOL_NAME,
    )


def _apply_start(transcript: Transcript, chunk: ToolCallStart) -> Transcript:
    if not chunk.tool_call_id:
        logger.warning(f"Skipping {chunk.kind} chunk without toolCallId")
        return transcript
    # An earlier out-of-order chunk may already have created the entry.
    return transcript.upsert(
        _is_tool_call(chunk.tool_call_id),
        create=lambda: _new_tool_call(chunk),
        update=lambda tc: tc,
    )


def _apply_tool_update(transcript: Transcript, chunk, update) -> Transcript:
    if not chunk.tool_call_id:
        logger.warning(f"Skipping {chunk.kind} chunk without toolCallId")
        return transcript
    return transcript.upsert(
        _is_tool_call(chunk.tool_call_id),
        create=lambda: update(_new_tool_call(chunk)),
        update=update,
    )

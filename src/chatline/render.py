"""Plain-text rendering of transcript snapshots.

Renderers key each block by the entry's ``key`` and show a tool call's
phase as a three-state indicator.
"""

from __future__ import annotations

import json

from chatline.transcript import (
    AssistantRun,
    ToolCall,
    ToolCallPhase,
    Transcript,
    TranscriptEntry,
    UserMessage,
)

PHASE_INDICATORS = {
    ToolCallPhase.STREAMING: "input-streaming",
    ToolCallPhase.EXECUTING: "input-available",
    ToolCallPhase.DONE: "output-available",
}
ERROR_INDICATOR = "output-error"


def phase_indicator(call: ToolCall) -> str:
    if call.phase is ToolCallPhase.DONE and call.is_error:
        return ERROR_INDICATOR
    return PHASE_INDICATORS[call.phase]


def _show(value) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


def format_tool_call(call: ToolCall) -> str:
    # Parsed args win over the raw streamed text once available.
    tool_input = call.args if call.args is not None else call.args_text
    lines = [
        f"[tool-{call.tool_name}] ({phase_indicator(call)})",
        f"  input: {_show(tool_input)}",
    ]
    if call.phase is ToolCallPhase.DONE:
        lines.append(f"  output: {_show(call.result)}")
    return "\n".join(lines)


def format_entry(entry: TranscriptEntry) -> str:
    if isinstance(entry, UserMessage):
        return f"User: {entry.content}"
    if isinstance(entry, AssistantRun):
        return f"Assistant: {entry.content}"
    if isinstance(entry, ToolCall):
        return format_tool_call(entry)
    return ""


def format_transcript(transcript: Transcript) -> str:
    return "\n\n".join(format_entry(entry) for entry in transcript)

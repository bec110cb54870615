"""Unit tests for chunk record decoding."""

from chatline.chunks import (
    TextDelta,
    ToolCallComplete,
    ToolCallDelta,
    ToolCallStart,
    ToolResult,
    UnknownChunk,
    parse_chunk,
)


class TestParseChunk:
    def test_text_delta(self):
        chunk = parse_chunk({"type": "text-delta", "runId": "r1", "payload": {"text": "Hi"}})
        assert chunk == TextDelta(run_id="r1", text="Hi")
        assert chunk.kind == "text-delta"

    def test_tool_call_start(self):
        chunk = parse_chunk({
            "type": "tool-call-input-streaming-start",
            "runId": "r1",
            "payload": {"toolCallId": "c1", "toolName": "get_weather"},
        })
        assert chunk == ToolCallStart(run_id="r1", tool_call_id="c1", tool_name="get_weather")

    def test_tool_call_delta(self):
        chunk = parse_chunk({
            "type": "tool-call-delta",
            "runId": "r1",
            "payload": {"toolCallId": "c1", "argsTextDelta": '{"ci'},
        })
        assert chunk == ToolCallDelta(run_id="r1", tool_call_id="c1", args_text_delta='{"ci')

    def test_tool_call_complete(self):
        chunk = parse_chunk({
            "type": "tool-call",
            "runId": "r1",
            "payload": {"toolCallId": "c1", "toolName": "get_weather", "args": {"city": "Oslo"}},
        })
        assert chunk == ToolCallComplete(
            run_id="r1", tool_call_id="c1", tool_name="get_weather", args={"city": "Oslo"},
        )

    def test_tool_result(self):
        chunk = parse_chunk({
            "type": "tool-result",
            "runId": "r1",
            "payload": {"toolCallId": "c1", "result": {"temp": 3}, "isError": True},
        })
        assert isinstance(chunk, ToolResult)
        assert chunk.result == {"temp": 3}
        assert chunk.is_error is True
        assert chunk.tool_name is None

    def test_unknown_type(self):
        chunk = parse_chunk({"type": "step-finish", "runId": "r1", "payload": {"reason": "stop"}})
        assert chunk == UnknownChunk(run_id="r1", type="step-finish", payload={"reason": "stop"})

    def test_missing_fields_use_defaults(self):
        chunk = parse_chunk({"type": "tool-call-delta"})
        assert chunk == ToolCallDelta(run_id="", tool_call_id=None, args_text_delta=None)

    def test_non_dict_payload_is_ignored(self):
        chunk = parse_chunk({"type": "text-delta", "runId": "r1", "payload": "oops"})
        assert chunk == TextDelta(run_id="r1", text=None)

    def test_missing_type(self):
        assert isinstance(parse_chunk({}), UnknownChunk)


class TestWrongFieldTypes:
    def test_numeric_ids_become_strings(self):
        chunk = parse_chunk({
            "type": "tool-call-input-streaming-start",
            "runId": 42,
            "payload": {"toolCallId": 7, "toolName": "get_weather"},
        })
        assert chunk == ToolCallStart(run_id="42", tool_call_id="7", tool_name="get_weather")

    def test_null_run_id_is_empty(self):
        chunk = parse_chunk({"type": "text-delta", "runId": None, "payload": {"text": "x"}})
        assert chunk.run_id == ""

    def test_structured_ids_are_dropped(self):
        chunk = parse_chunk({
            "type": "tool-result",
            "runId": ["r1"],
            "payload": {"toolCallId": {"id": "c1"}, "toolName": True, "result": 1},
        })
        assert chunk.run_id == ""
        assert chunk.tool_call_id is None
        assert chunk.tool_name is None

    def test_non_string_text_is_dropped(self):
        chunk = parse_chunk({"type": "text-delta", "runId": "r1", "payload": {"text": 5}})
        assert chunk == TextDelta(run_id="r1", text=None)

    def test_non_string_args_delta_is_dropped(self):
        chunk = parse_chunk({
            "type": "tool-call-delta",
            "runId": "r1",
            "payload": {"toolCallId": "c1", "argsTextDelta": {"city": "Oslo"}},
        })
        assert chunk == ToolCallDelta(run_id="r1", tool_call_id="c1", args_text_delta=None)

from chatline.render import (
    format_entry,
    format_tool_call,
    format_transcript,
    phase_indicator,
)
from chatline.transcript import (
    AssistantRun,
    ToolCall,
    Transcript,
    UserMessage,
)


def test_phase_indicators():
    call = ToolCall(tool_call_id="c1")
    assert phase_indicator(call) == "input-streaming"
    call = call.complete_args({})
    assert phase_indicator(call) == "input-available"
    assert phase_indicator(call.finish("ok")) == "output-available"
    assert phase_indicator(call.finish("boom", is_error=True)) == "output-error"


def test_tool_call_shows_raw_args_until_parsed():
    call = ToolCall(tool_call_id="c1", tool_name="get_weather").append_args('{"city": "Lon')
    assert format_tool_call(call) == (
        "[tool-get_weather] (input-streaming)\n"
        '  input: {"city": "Lon'
    )


def test_tool_call_with_result():
    call = (
        ToolCall(tool_call_id="c1", tool_name="get_weather")
        .append_args('{"city":"London"}')
        .complete_args({"city": "London"})
        .finish({"temperature": 14})
    )
    assert format_tool_call(call) == (
        "[tool-get_weather] (output-available)\n"
        '  input: {"city": "London"}\n'
        '  output: {"temperature": 14}'
    )


def test_format_transcript():
    transcript = Transcript(entries=(
        UserMessage(content="hi"),
        AssistantRun(run_id="r1", content="hello"),
    ))
    assert format_transcript(transcript) == "User: hi\n\nAssistant: hello"
    assert format_entry(transcript[1]) == "Assistant: hello"

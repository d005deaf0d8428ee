"""
Tests for the streaming state machine
"""

import json

import pytest

from ragent.chat.messages import Role, Usage
from ragent.errors import ProtocolError
from ragent.providers.streaming import (
    FinishReason,
    FinishSignal,
    StreamPhase,
    StreamState,
    TextDelta,
    ToolCallFragment,
    UsageInfo,
    decode_frame,
    parse_arguments,
    parse_data_line,
)
from tests.conftest import delta_frame


def feed(state: StreamState, *frames: dict) -> list[str]:
    """Apply decoded frames, returning the text handed out."""
    chunks = []
    for frame in frames:
        for event in decode_frame(json.dumps(frame)):
            chunk = state.apply(event)
            if chunk:
                chunks.append(chunk)
    return chunks


class TestParseDataLine:

    def test_data_line(self):
        assert parse_data_line('data: {"a": 1}') == '{"a": 1}'

    def test_no_space_after_prefix(self):
        assert parse_data_line("data:[DONE]") == "[DONE]"

    @pytest.mark.parametrize("line", ["", ": keep-alive", "event: message", "id: 4"])
    def test_non_data_lines_are_ignored(self, line):
        assert parse_data_line(line) is None


class TestDecodeFrame:

    def test_text_and_finish(self):
        events = decode_frame(json.dumps(delta_frame("Hi", finish_reason="stop")))

        assert events == [TextDelta("Hi"), FinishSignal(FinishReason.STOP, "stop")]

    def test_usage_only_frame(self):
        events = decode_frame(json.dumps({
            "choices": [],
            "usage": {"prompt_tokens": 7, "completion_tokens": 3},
        }))

        assert events == [UsageInfo(Usage(7, 3))]

    def test_malformed_json(self):
        with pytest.raises(ProtocolError, match="Malformed"):
            decode_frame('{"choices": [')

    def test_error_frame(self):
        with pytest.raises(ProtocolError, match="overloaded"):
            decode_frame(json.dumps({"error": {"message": "overloaded"}}))

    def test_unexpected_shape(self):
        with pytest.raises(ProtocolError):
            decode_frame(json.dumps({"choices": "nope"}))

    def test_unknown_finish_reason_ends_normally(self):
        events = decode_frame(json.dumps(delta_frame(finish_reason="content_filter")))

        assert events == [FinishSignal(FinishReason.STOP, "content_filter")]


class TestParseArguments:

    def test_empty_means_no_arguments(self):
        assert parse_arguments("t", "") == {}

    def test_object(self):
        assert parse_arguments("t", '{"a": 1}') == {"a": 1}

    def test_invalid_json(self):
        with pytest.raises(ProtocolError, match="Invalid JSON arguments for tool 't'"):
            parse_arguments("t", '{"a":')

    def test_non_object(self):
        with pytest.raises(ProtocolError):
            parse_arguments("t", "[1, 2]")


class TestStreamState:

    def test_text_stream(self):
        state = StreamState()
        state.start()

        chunks = feed(
            state,
            delta_frame("Hel"),
            delta_frame("lo"),
            delta_frame(finish_reason="stop"),
            {"choices": [], "usage": {"prompt_tokens": 5, "completion_tokens": 2}},
        )
        message = state.finalize()

        assert chunks == ["Hel", "lo"]
        assert message.role is Role.ASSISTANT
        assert message.content == "Hello"
        assert message.usage == Usage(5, 2)
        assert message.metadata["finish_reason"] == "stop"
        assert state.phase is StreamPhase.DONE

    def test_tool_call_fragments_are_concatenated(self):
        state = StreamState()
        state.start()

        feed(
            state,
            delta_frame(tool_calls=[{"index": 0, "id": "call_1",
                                     "function": {"name": "add", "arguments": '{"a":'}}]),
            delta_frame(tool_calls=[{"index": 0, "function": {"arguments": "1}"}}]),
            delta_frame(finish_reason="tool_calls"),
        )
        message = state.finalize()

        assert message.role is Role.TOOL_CALL
        assert len(message.tool_calls) == 1
        call = message.tool_calls[0]
        assert (call.id, call.name, call.arguments, call.inputs) == ("call_1", "add", '{"a":1}', {"a": 1})
        assert message.metadata["tool_calls"][0]["function"]["arguments"] == '{"a":1}'

    def test_parallel_tool_calls_keep_arrival_order(self):
        state = StreamState()
        state.start()

        feed(
            state,
            delta_frame(tool_calls=[
                {"index": 0, "id": "a", "function": {"name": "first", "arguments": ""}},
                {"index": 1, "id": "b", "function": {"name": "second", "arguments": '{"x"'}},
            ]),
            delta_frame(tool_calls=[{"index": 1, "function": {"arguments": ': 2}'}}]),
            delta_frame(finish_reason="tool_calls"),
        )
        message = state.finalize()

        assert [tc.id for tc in message.tool_calls] == ["a", "b"]
        assert message.tool_calls[0].inputs == {}
        assert message.tool_calls[1].inputs == {"x": 2}

    def test_stop_with_pending_calls_is_a_tool_call_turn(self):
        state = StreamState()
        state.start()

        state.apply(ToolCallFragment(0, "c", "echo", '{"text": "a"}'))
        state.apply(FinishSignal(FinishReason.STOP, "stop"))

        assert state.phase is StreamPhase.TOOL_CALL_PENDING
        assert state.finalize().has_tool_calls

    def test_fragment_for_unknown_call(self):
        state = StreamState()
        state.start()

        with pytest.raises(ProtocolError):
            state.apply(ToolCallFragment(3, None, None, "{}"))

    def test_no_text_after_finish(self):
        state = StreamState()
        state.start()

        state.apply(FinishSignal(FinishReason.STOP, "stop"))

        assert state.apply(TextDelta("late")) is None
        assert state.finalize().content == ""

    def test_usage_after_finish_is_kept(self):
        state = StreamState()
        state.start()

        state.apply(FinishSignal(FinishReason.STOP, "stop"))
        state.apply(UsageInfo(Usage(1, 1)))

        assert state.finalize().usage == Usage(1, 1)

    def test_error_finish(self):
        state = StreamState()
        state.start()

        with pytest.raises(ProtocolError):
            state.apply(FinishSignal(FinishReason.ERROR, "error"))

    def test_missing_finish_reason(self):
        state = StreamState()
        state.start()
        state.apply(TextDelta("cut off"))

        with pytest.raises(ProtocolError, match="without a finish reason"):
            state.finalize()

    def test_invalid_arguments_surface_on_finalize(self):
        state = StreamState()
        state.start()
        state.apply(ToolCallFragment(0, "c", "echo", '{"text":'))
        state.apply(FinishSignal(FinishReason.TOOL_CALLS, "tool_calls"))

        with pytest.raises(ProtocolError):
            state.finalize()

    def test_start_twice(self):
        state = StreamState()
        state.start()

        with pytest.raises(RuntimeError):
            state.start()

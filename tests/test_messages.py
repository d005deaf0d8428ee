"""
Tests for the Message model
"""

from ragent.chat.messages import Message, Role, ToolCall, Usage


class TestMessage:
    """Test Message factories and serialization."""

    def test_factories_set_roles(self):
        assert Message.user("hi").role is Role.USER
        assert Message.assistant("hello").role is Role.ASSISTANT
        assert Message.system("be nice").role is Role.SYSTEM

    def test_tool_call_message(self):
        call = ToolCall(id="1", name="echo", arguments='{"text": "a"}', inputs={"text": "a"})
        message = Message.tool_call([call])

        assert message.role is Role.TOOL_CALL
        assert message.content == ""
        assert message.has_tool_calls

    def test_tool_result_is_correlated(self):
        message = Message.tool_result("call_7", "echo", "a")

        assert message.role is Role.TOOL_RESULT
        assert message.tool_call_id == "call_7"
        assert message.tool_name == "echo"
        assert not message.has_tool_calls

    def test_usage_total(self):
        assert Usage(prompt_tokens=10, completion_tokens=5).total_tokens == 15

    def test_dict_round_trip_keeps_everything(self):
        call = ToolCall(id="1", name="echo", arguments='{"text": "a"}', inputs={"text": "a"})
        original = Message.tool_call([call], content="thinking")
        original.set_usage(Usage(3, 4)).add_metadata("finish_reason", "tool_calls")

        restored = Message.from_dict(original.to_dict())

        assert restored.role is Role.TOOL_CALL
        assert restored.content == "thinking"
        assert restored.usage == Usage(3, 4)
        assert restored.metadata == {"finish_reason": "tool_calls"}
        assert restored.tool_calls[0].inputs == {"text": "a"}
        assert restored.timestamp == original.timestamp

    def test_to_dict_omits_absent_fields(self):
        data = Message.user("hi").to_dict()

        assert "usage" not in data
        assert "tool_calls" not in data
        assert "tool_call_id" not in data

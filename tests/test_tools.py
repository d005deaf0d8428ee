"""
Tests for the tool registry
"""

import pytest

from ragent.errors import (
    DuplicateToolError,
    InvalidToolInputError,
    ToolExecutionError,
    UnknownToolError,
)
from ragent.tools import Tool, ToolProperty, ToolRegistry, ToolResult


class TestToolResult:

    def test_string_data_is_passed_through(self):
        assert ToolResult(success=True, data="plain").to_message() == "plain"

    def test_structured_data_is_json(self):
        assert ToolResult(success=True, data={"a": 1}).to_message() == '{"a": 1}'

    def test_failure(self):
        assert ToolResult(success=False, error="nope").to_message() == "Error: nope"


class TestTool:

    def test_openai_function_schema(self, echo_tool):
        schema = echo_tool.to_openai_function()

        assert schema["type"] == "function"
        assert schema["function"]["name"] == "echo"
        assert schema["function"]["parameters"] == {
            "type": "object",
            "properties": {"text": {"type": "string", "description": "Text to repeat"}},
            "required": ["text"],
        }

    def test_optional_properties_are_not_required(self):
        tool = Tool(
            name="search",
            description="Search",
            execute=lambda inputs: [],
            properties=[
                ToolProperty("query", "Search terms"),
                ToolProperty("limit", "Max results", type="integer", required=False),
            ],
        )

        assert tool.required_properties == ["query"]


class TestToolRegistry:

    def test_register_and_find(self, echo_tool):
        registry = ToolRegistry([echo_tool])

        assert registry.find("echo") is echo_tool
        assert "echo" in registry
        assert len(registry) == 1
        assert registry.list_names() == ["echo"]

    def test_duplicate_name(self, echo_tool):
        registry = ToolRegistry([echo_tool])

        with pytest.raises(DuplicateToolError):
            registry.register(echo_tool)

    def test_unknown_tool(self):
        with pytest.raises(UnknownToolError, match="Tool 'missing' not found"):
            ToolRegistry().find("missing")

    @pytest.mark.asyncio
    async def test_invoke_sync_tool(self, echo_tool):
        registry = ToolRegistry([echo_tool])

        result = await registry.invoke(echo_tool, {"text": "hi"})

        assert result == ToolResult(success=True, data="hi")

    @pytest.mark.asyncio
    async def test_invoke_async_tool(self):
        async def add(inputs):
            return inputs["a"] + inputs["b"]

        tool = Tool(
            name="add",
            description="Add two numbers",
            execute=add,
            properties=[ToolProperty("a", "First", "number"), ToolProperty("b", "Second", "number")],
        )

        result = await ToolRegistry([tool]).invoke(tool, {"a": 1, "b": 2})

        assert result.data == 3

    @pytest.mark.asyncio
    async def test_tool_result_is_returned_as_is(self):
        tool = Tool(name="t", description="t", execute=lambda inputs: ToolResult(False, error="no"))

        result = await ToolRegistry([tool]).invoke(tool, {})

        assert result.success is False

    @pytest.mark.asyncio
    async def test_missing_required_parameter(self, echo_tool):
        with pytest.raises(InvalidToolInputError) as exc_info:
            await ToolRegistry([echo_tool]).invoke(echo_tool, {})

        assert exc_info.value.parameter == "text"
        assert exc_info.value.tool_name == "echo"

    @pytest.mark.asyncio
    async def test_execution_error_keeps_original_message(self, failing_tool):
        with pytest.raises(ToolExecutionError) as exc_info:
            await ToolRegistry([failing_tool]).invoke(failing_tool, {})

        assert exc_info.value.original_message == "disk on fire"
        assert str(exc_info.value) == "Tool 'explode' failed: disk on fire"

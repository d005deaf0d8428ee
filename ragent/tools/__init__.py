"""
Tools System
============

Tools are functions the model can ask the agent to run.

Each tool has a name, a description shown to the model, and an ordered
list of parameters. The model picks a tool, the agent validates the
inputs, runs the tool, and feeds the result back as a tool-result
message so the model can continue.

How Tools Work:
1. The provider receives the tool definitions with the request
2. The model replies with one or more tool calls
3. The registry validates required parameters and runs each tool
4. Results (or failures) go back to the model
5. The model answers, or calls more tools

This module provides:
- ToolProperty: one named, described parameter
- Tool: definition plus the function that runs it
- ToolResult: standardized outcome of a tool run
- ToolRegistry: name -> Tool lookup, validation and invocation
"""

import inspect
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from ragent.errors import (
    DuplicateToolError,
    InvalidToolInputError,
    ToolExecutionError,
    UnknownToolError,
)
from ragent.utils.logger import Logger

logger = Logger("Tools")


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: The result data (varies by tool)
        error: Error message if success is False
    """
    success: bool
    data: Any = None
    error: str | None = None

    def to_message(self) -> str:
        """Format as tool-result content for the model."""
        if not self.success:
            return f"Error: {self.error}"
        if isinstance(self.data, str):
            return self.data
        return json.dumps(self.data, default=str)


@dataclass(frozen=True)
class ToolProperty:
    """
    A tool parameter.

    Attributes:
        name: Parameter name as it appears in the arguments object
        description: What the parameter means (shown to the model)
        type: JSON Schema type of the value
        required: Whether the model must supply it
    """
    name: str
    description: str
    type: str = "string"
    required: bool = True

    def to_schema(self) -> dict:
        return {"type": self.type, "description": self.description}


@dataclass
class Tool:
    """
    Definition of a tool.

    The execute function receives the parsed inputs as a dict and returns
    any value (or a ToolResult). It may be a plain function or a
    coroutine function.

    Example:
        async def get_weather(inputs: dict) -> dict:
            return {"city": inputs["city"], "forecast": "sunny"}

        tool = Tool(
            name="get_weather",
            description="Current weather for a city",
            properties=[ToolProperty("city", "City name")],
            execute=get_weather,
        )
    """
    name: str
    description: str
    execute: Callable[[dict], Any]
    properties: list[ToolProperty] = field(default_factory=list)

    @property
    def required_properties(self) -> list[str]:
        return [prop.name for prop in self.properties if prop.required]

    def parameters_schema(self) -> dict:
        """JSON Schema object describing the parameters."""
        return {
            "type": "object",
            "properties": {prop.name: prop.to_schema() for prop in self.properties},
            "required": self.required_properties,
        }

    def to_openai_function(self) -> dict:
        """Convert to the OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            }
        }


class ToolRegistry:
    """
    Registry of the tools available to one agent.

    Lookups are lock-free reads of a dict; registration takes a lock so
    concurrent writers are serialized.

    Example:
        registry = ToolRegistry()
        registry.register(tool)

        tool = registry.find("get_weather")
        result = await registry.invoke(tool, {"city": "Rome"})
    """

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        self._lock = threading.Lock()

        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """
        Register a tool.

        Raises:
            DuplicateToolError: If a tool with this name already exists
        """
        with self._lock:
            if tool.name in self._tools:
                raise DuplicateToolError(tool.name)
            self._tools = {**self._tools, tool.name: tool}

        logger.debug(f"Registered tool: {tool.name}")

    def find(self, name: str) -> Tool:
        """
        Get a tool by name.

        Raises:
            UnknownToolError: If no tool has this name
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def get_all(self) -> list[Tool]:
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    async def invoke(self, tool: Tool, inputs: dict[str, Any]) -> ToolResult:
        """
        Validate inputs and run a tool.

        Args:
            tool: The tool to run
            inputs: Parsed arguments from the model

        Returns:
            ToolResult wrapping the tool's return value

        Raises:
            InvalidToolInputError: If a required parameter is missing
            ToolExecutionError: If the tool body raised
        """
        for name in tool.required_properties:
            if name not in inputs:
                raise InvalidToolInputError(tool.name, name)

        try:
            result = tool.execute(inputs)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Tool execution failed: {tool.name}", e)
            raise ToolExecutionError(tool.name, str(e)) from e

        if isinstance(result, ToolResult):
            return result
        return ToolResult(success=True, data=result)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


__all__ = [
    "Tool",
    "ToolProperty",
    "ToolResult",
    "ToolRegistry",
]

"""
Tool Executor
=============

Runs the tool calls from one model turn and turns each outcome into a
tool-result message.

Tool Execution Loop:
    1. The model replies with tool calls
    2. The executor runs every call (concurrently by default)
    3. It waits for all of them to finish or fail
    4. Results are returned in the order the calls appeared
    5. The agent appends them and asks the model again

Failures stay inside the loop. An unknown tool, a missing required
parameter, or a tool that raises all produce a tool-result message
starting with "Error:" so the model can see what went wrong and react.
"""

import asyncio
from dataclasses import dataclass

from ragent.chat.messages import Message, ToolCall
from ragent.errors import ToolError
from ragent.tools import ToolRegistry, ToolResult
from ragent.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass
class ToolCallResult:
    """
    Result of executing one tool call.

    Attributes:
        tool_call: The call that was executed
        result: The tool result (success or failure)
    """
    tool_call: ToolCall
    result: ToolResult

    def to_message(self) -> Message:
        """Tool-result message correlated to the call by ID."""
        return Message.tool_result(
            tool_call_id=self.tool_call.id,
            tool_name=self.tool_call.name,
            content=self.result.to_message(),
        )


class ToolExecutor:
    """
    Executes the tools called by the model.

    Example:
        executor = ToolExecutor(registry)
        results = await executor.execute_all(reply.tool_calls)
        for result in results:
            history.append(result.to_message())
    """

    def __init__(self, registry: ToolRegistry, parallel: bool = True):
        """
        Args:
            registry: Where tools are looked up
            parallel: Run the calls of one turn concurrently
        """
        self.registry = registry
        self.parallel = parallel

    async def execute_one(self, tool_call: ToolCall) -> ToolCallResult:
        """Execute a single call; tool errors become a failed ToolResult."""
        logger.info(f"Executing tool: {tool_call.name}")
        call_logger = logger.child(tool_call.name)

        try:
            tool = self.registry.find(tool_call.name)
            result = await self.registry.invoke(tool, tool_call.inputs)
        except ToolError as e:
            call_logger.warning("Failed", {"call_id": tool_call.id}, error=e)
            result = ToolResult(success=False, error=str(e))
        else:
            call_logger.debug("Succeeded", {"call_id": tool_call.id})

        return ToolCallResult(tool_call=tool_call, result=result)

    async def execute_all(self, tool_calls: list[ToolCall]) -> list[ToolCallResult]:
        """
        Execute every call of a turn.

        All calls finish (or fail) before this returns, and results keep
        the order of `tool_calls` whatever order the tools finish in.
        """
        if self.parallel and len(tool_calls) > 1:
            return list(await asyncio.gather(*(self.execute_one(tc) for tc in tool_calls)))

        results = []
        for tool_call in tool_calls:
            results.append(await self.execute_one(tool_call))
        return results

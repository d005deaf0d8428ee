"""
Agent System
============

The agent is the orchestration loop. It:
1. Records the user turn in the chat history
2. Sends the history to the provider with instructions and tools
3. Executes any tool calls and feeds the results back
4. Repeats until the model answers, up to a maximum depth

This module provides:
- Agent: the orchestration loop (chat and stream)
- ToolExecutor: runs one round of tool calls, in order
"""

from ragent.agent.core import Agent
from ragent.agent.tools_executor import ToolExecutor, ToolCallResult

__all__ = ["Agent", "ToolExecutor", "ToolCallResult"]

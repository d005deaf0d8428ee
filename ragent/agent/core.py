"""
Agent Core
==========

The tool-call orchestration loop.

Agent Loop:
    User Message
         │
         ▼
    Append to history
         │
         ▼
    Provider request (history + instructions + tools)   ◀──────┐
         │                                                     │
         ▼                                                     │
    ┌─── Tool calls? ───┐                                      │
    │                   │                                      │
    Yes                 No                                     │
    │                   │                                      │
    ▼                   ▼                                      │
    depth + 1      Append answer, return it                    │
    depth == max? ── raise MaxToolDepthExceededError           │
    │                                                          │
    ▼                                                          │
    Execute tools, append call + results ──────────────────────┘

The depth bound is always finite. Tool failures are fed back to the
model as tool-result messages; provider failures (transport, protocol,
timeout) abort the turn and propagate to the caller.

Both a one-shot (chat) and a streaming (stream) variant are provided.
All conversation state goes through the ChatHistory.
"""

from collections.abc import AsyncGenerator

from ragent.agent.tools_executor import ToolExecutor
from ragent.chat.history import ChatHistory
from ragent.chat.messages import Message
from ragent.chat.stores import FileChatStore
from ragent.errors import MaxToolDepthExceededError
from ragent.events import (
    CHAT_START,
    CHAT_STOP,
    TOOL_CALLED,
    TOOL_CALLING,
    ChatStart,
    ChatStop,
    Observable,
    ToolCalled,
    ToolCalling,
)
from ragent.providers import Provider, create_provider
from ragent.tools import Tool, ToolRegistry
from ragent.utils.config import Config, get_config
from ragent.utils.logger import Logger

logger = Logger("Agent")

DEFAULT_MAX_TOOL_DEPTH = 10


class Agent(Observable):
    """
    Drives conversations with a model, running tools on its behalf.

    Example:
        agent = Agent(provider, tools=[weather_tool], instructions="Be brief.")

        reply = await agent.chat("What's the weather in Rome?")
        print(reply.content)

        async for chunk in agent.stream("And in Paris?"):
            print(chunk, end="")
    """

    def __init__(
        self,
        provider: Provider,
        history: ChatHistory | None = None,
        tools: ToolRegistry | list[Tool] | None = None,
        instructions: str | None = None,
        max_tool_depth: int = DEFAULT_MAX_TOOL_DEPTH,
        parallel_tools: bool = True,
        timeout: float | None = None
    ):
        """
        Initialize the agent.

        Args:
            provider: Model backend
            history: Conversation history (in-memory if omitted)
            tools: Registry or list of tools offered to the model
            instructions: System instructions sent with every request
            max_tool_depth: Maximum tool-call rounds per user turn
            parallel_tools: Run the tool calls of one round concurrently
            timeout: Deadline in seconds for each provider call

        Raises:
            ValueError: If max_tool_depth is not a positive integer
        """
        super().__init__()

        if isinstance(max_tool_depth, bool) or not isinstance(max_tool_depth, int) or max_tool_depth <= 0:
            raise ValueError(f"max_tool_depth must be a positive integer, got {max_tool_depth!r}")

        self.provider = provider
        self.history = history if history is not None else ChatHistory()
        self.tools = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self.instructions = instructions
        self.max_tool_depth = max_tool_depth
        self.timeout = timeout
        self.executor = ToolExecutor(self.tools, parallel=parallel_tools)

        logger.info(f"Agent initialized with provider: {provider.name}")

    @classmethod
    def from_config(
        cls,
        config: Config | None = None,
        tools: ToolRegistry | list[Tool] | None = None,
        instructions: str | None = None
    ) -> "Agent":
        """Build an agent from the environment configuration."""
        config = config or get_config()

        store = FileChatStore(config.history.directory) if config.history.directory else None
        history = ChatHistory(
            store=store,
            key=config.history.key,
            context_window=config.history.context_window,
        )

        return cls(
            provider=create_provider(config.provider),
            history=history,
            tools=tools,
            instructions=instructions,
            max_tool_depth=config.agent.max_tool_depth,
            parallel_tools=config.agent.parallel_tools,
            timeout=config.provider.timeout_seconds,
        )

    def set_instructions(self, instructions: str | None) -> "Agent":
        self.instructions = instructions
        return self

    def add_tool(self, tool: Tool) -> "Agent":
        self.tools.register(tool)
        return self

    def _prepare_provider(self) -> Provider:
        return self.provider.system_prompt(self.instructions).set_tools(self.tools.get_all())

    def _start_turn(self, message: Message | str) -> Message:
        if isinstance(message, str):
            message = Message.user(message)
        self.notify(CHAT_START, ChatStart(message))
        self.history.append(message)
        return message

    def _check_depth(self, depth: int) -> None:
        if depth >= self.max_tool_depth:
            logger.warning(f"Reached max tool depth ({self.max_tool_depth})")
            raise MaxToolDepthExceededError(self.max_tool_depth)

    async def _run_tools(self, reply: Message) -> None:
        """Execute the requested tools, then append the call and its results."""
        for tool_call in reply.tool_calls:
            self.notify(TOOL_CALLING, ToolCalling(tool_call))

        results = await self.executor.execute_all(reply.tool_calls)

        self.history.append(reply)
        for result in results:
            message = result.to_message()
            self.history.append(message)
            self.notify(TOOL_CALLED, ToolCalled(result.tool_call, message))

    def _finish_turn(self, reply: Message) -> Message:
        self.history.append(reply)
        self.notify(CHAT_STOP, ChatStop(reply))
        logger.info(f"Generated response ({len(reply.content)} chars)")
        return reply

    async def chat(self, message: Message | str) -> Message:
        """
        Run one user turn to completion.

        Returns:
            The final assistant message

        Raises:
            MaxToolDepthExceededError: If the model keeps calling tools
            ProviderError: On transport, protocol or timeout failures
        """
        self._start_turn(message)

        depth = 0
        while True:
            self._check_depth(depth)
            reply = await self._prepare_provider().chat(list(self.history.all()), timeout=self.timeout)

            if not reply.has_tool_calls:
                return self._finish_turn(reply)

            logger.debug(f"Tool round {depth + 1}")
            await self._run_tools(reply)
            depth += 1

    async def stream(
        self,
        message: Message | str,
        partial_results: bool = False
    ) -> AsyncGenerator[str, None]:
        """
        Run one user turn, yielding the answer text as it arrives.

        Tool rounds are handled between streamed requests; text the model
        emits alongside a tool call is yielded too. Closing the generator
        early closes the open provider stream and records nothing for the
        unfinished request.

        Args:
            message: The user message
            partial_results: On timeout, attach the partial text to the error

        Raises:
            MaxToolDepthExceededError: If the model keeps calling tools
            ProviderError: On transport, protocol or timeout failures
        """
        self._start_turn(message)

        depth = 0
        while True:
            self._check_depth(depth)
            stream = self._prepare_provider().stream(
                list(self.history.all()),
                timeout=self.timeout,
                partial_results=partial_results,
            )
            async with stream:
                async for chunk in stream:
                    yield chunk

            reply = stream.message
            if not reply.has_tool_calls:
                self._finish_turn(reply)
                return

            logger.debug(f"Tool round {depth + 1} (streaming)")
            await self._run_tools(reply)
            depth += 1

    def clear_history(self) -> None:
        """
        Clear the conversation history.

        Raises:
            PersistenceError: If stored history cannot be deleted
        """
        self.history.clear()
        logger.info("Cleared conversation history")

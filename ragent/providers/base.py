"""
Provider Interface
==================

Every model backend exposes the same four capabilities:

    system_prompt(prompt)        set or clear the system instructions
    set_tools(tools)             tools offered to the model
    await chat(messages)         one request, one complete Message
    stream(messages)             a ChatStream of text chunks

Backends differ in configuration (base URL, headers, feature support),
not in behavior, so there is one adapter per wire format and a settings
struct per backend rather than a class hierarchy.

ChatStream
----------
A ChatStream is a lazy, finite, single-use async iterator of text
chunks. When it is exhausted, `stream.message` holds the finalized
Message: a plain assistant answer, or a tool-call message the agent must
act on. Closing the stream early (or cancelling the task consuming it)
closes the underlying HTTP response and leaves `message` unset.

    async with provider.stream(messages, timeout=30) as stream:
        async for chunk in stream:
            print(chunk, end="")
    reply = stream.message
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Protocol

from ragent.chat.messages import Message
from ragent.errors import ProviderTimeoutError
from ragent.providers.streaming import StreamState
from ragent.tools import Tool


class Provider(Protocol):
    """Capability interface implemented by every backend."""

    name: str

    def system_prompt(self, prompt: str | None) -> "Provider": ...

    def set_tools(self, tools: list[Tool]) -> "Provider": ...

    async def chat(self, messages: list[Message], timeout: float | None = None) -> Message: ...

    def stream(
        self,
        messages: list[Message],
        timeout: float | None = None,
        partial_results: bool = False
    ) -> "ChatStream": ...


class ChatStream:
    """
    Async iterator over the text chunks of one streaming request.

    Args:
        chunks: Async generator producing text; it must drive `state`
            to DONE before it finishes
        state: The request's StreamState
        provider: Provider name for error messages
        timeout: Deadline in seconds for the whole stream, or None
        partial_results: Attach the text received so far to a
            ProviderTimeoutError instead of discarding it
    """

    def __init__(
        self,
        chunks: AsyncGenerator[str, None],
        state: StreamState,
        provider: str,
        timeout: float | None = None,
        partial_results: bool = False
    ):
        self._chunks = chunks
        self.state = state
        self.provider = provider
        self.timeout = timeout
        self.partial_results = partial_results
        self._deadline: float | None = None

    @property
    def message(self) -> Message:
        """
        The finalized message.

        Raises:
            RuntimeError: If the stream has not been fully consumed
        """
        if self.state.message is None:
            raise RuntimeError("The stream has not completed")
        return self.state.message

    @property
    def completed(self) -> bool:
        return self.state.message is not None

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> str:
        if self.timeout is None:
            return await self._chunks.__anext__()

        loop = asyncio.get_running_loop()
        if self._deadline is None:
            self._deadline = loop.time() + self.timeout

        try:
            async with asyncio.timeout_at(self._deadline):
                return await self._chunks.__anext__()
        except TimeoutError:
            await self.aclose()
            partial = self.state.text if self.partial_results else None
            raise ProviderTimeoutError(
                f"{self.provider} stream exceeded {self.timeout}s",
                self.provider,
                timeout=self.timeout,
                partial_text=partial,
            ) from None

    async def aclose(self) -> None:
        await self._chunks.aclose()

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

"""
Pytest Configuration and Fixtures
"""

import json
from collections.abc import AsyncGenerator
from typing import Callable

import httpx
import pytest

from ragent.chat.messages import Message, ToolCall
from ragent.providers.base import ChatStream
from ragent.providers.http import HttpTransport
from ragent.providers.openai import OpenAIProvider
from ragent.providers.streaming import (
    FinishReason,
    FinishSignal,
    StreamState,
    TextDelta,
    ToolCallFragment,
)
from ragent.tools import Tool, ToolProperty

BASE_URL = "https://llm.test"


def make_tool_call(call_id: str, name: str, **inputs) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=json.dumps(inputs), inputs=inputs)


def tool_call_reply(*tool_calls: ToolCall) -> Message:
    return Message.tool_call(list(tool_calls))


class ScriptedProvider:
    """
    Provider double replaying scripted replies.

    `replies` is either a list consumed in order or a function of the
    request number (0-based) returning the reply.
    """

    name = "scripted"

    def __init__(self, replies: list[Message] | Callable[[int], Message]):
        self._replies = replies
        self.requests: list[list[Message]] = []
        self.system: str | None = None
        self.tools: list[Tool] = []
        self.closed_streams = 0

    def _next(self) -> Message:
        index = len(self.requests) - 1
        if callable(self._replies):
            return self._replies(index)
        return self._replies[index]

    def system_prompt(self, prompt: str | None) -> "ScriptedProvider":
        self.system = prompt
        return self

    def set_tools(self, tools: list[Tool]) -> "ScriptedProvider":
        self.tools = list(tools)
        return self

    async def chat(self, messages: list[Message], timeout: float | None = None) -> Message:
        self.requests.append(list(messages))
        return self._next()

    def stream(
        self,
        messages: list[Message],
        timeout: float | None = None,
        partial_results: bool = False
    ) -> ChatStream:
        self.requests.append(list(messages))
        state = StreamState()
        return ChatStream(self._chunks(self._next(), state), state, provider=self.name,
                          timeout=timeout, partial_results=partial_results)

    async def _chunks(self, reply: Message, state: StreamState) -> AsyncGenerator[str, None]:
        state.start()
        try:
            for word in reply.content.split(" "):
                if word:
                    chunk = state.apply(TextDelta(word + " "))
                    if chunk:
                        yield chunk
            for index, tool_call in enumerate(reply.tool_calls):
                state.apply(ToolCallFragment(index, tool_call.id, tool_call.name, tool_call.arguments))
            if reply.tool_calls:
                state.apply(FinishSignal(FinishReason.TOOL_CALLS, "tool_calls"))
            else:
                state.apply(FinishSignal(FinishReason.STOP, "stop"))
            state.finalize()
        finally:
            self.closed_streams += 1


def sse_body(*frames: dict) -> bytes:
    """Encode frames as a server-sent-event stream ending with [DONE]."""
    lines = [f"data: {json.dumps(frame)}\n\n" for frame in frames]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def delta_frame(content: str | None = None, tool_calls: list | None = None,
                finish_reason: str | None = None) -> dict:
    delta: dict = {}
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    return {"choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}]}


def mock_provider(handler, **kwargs) -> OpenAIProvider:
    """OpenAIProvider whose HTTP traffic goes to `handler`."""
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    transport = HttpTransport(name="openai", base_url=BASE_URL, client=client)
    return OpenAIProvider(api_key="sk-test", model="gpt-test", transport=transport, **kwargs)


@pytest.fixture
def echo_tool() -> Tool:
    """Tool returning its input text."""
    return Tool(
        name="echo",
        description="Repeat the text back",
        properties=[ToolProperty("text", "Text to repeat")],
        execute=lambda inputs: inputs["text"],
    )


@pytest.fixture
def failing_tool() -> Tool:
    """Tool whose body always raises."""
    def explode(inputs: dict):
        raise RuntimeError("disk on fire")

    return Tool(name="explode", description="Always fails", execute=explode)

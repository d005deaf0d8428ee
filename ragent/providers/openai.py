"""
OpenAI-Compatible Provider
==========================

Adapter for the chat-completions wire format used by OpenAI and the
many services that copy it.

Request:
    {"model": ..., "max_tokens": ..., "messages": [...], "tools": [...]}

Non-streaming response:
    choices[0].message.{content | tool_calls}, choices[0].finish_reason,
    optional usage.{prompt_tokens, completion_tokens}

Streaming response:
    "data: {...}" frames decoding to choices[0].delta.{content | tool_calls}
    plus finish_reason, terminated by "data: [DONE]"

Backend differences (base URL, extra headers, tool support) are captured
in ProviderSettings; see mistral.py for a second backend.
"""

import asyncio
import json
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from ragent.chat.messages import Message, Role, ToolCall
from ragent.errors import ProtocolError, ProviderError, ProviderTimeoutError
from ragent.providers.base import ChatStream
from ragent.providers.http import HttpTransport
from ragent.providers.streaming import (
    DONE_SENTINEL,
    StreamState,
    decode_frame,
    decode_usage,
    parse_arguments,
    parse_data_line,
    tool_calls_payload,
)
from ragent.tools import Tool
from ragent.utils.logger import Logger

logger = Logger("OpenAI")


@dataclass(frozen=True)
class ProviderSettings:
    """
    Per-backend HTTP details.

    Attributes:
        name: Backend name used in logs and errors
        base_url: API root
        path: Chat-completions endpoint
        headers: Extra headers sent with every request
        supports_tools: Whether tool definitions may be sent
        stream_usage: Ask for usage on the trailing stream frame
    """
    name: str
    base_url: str
    path: str = "/v1/chat/completions"
    headers: dict[str, str] = field(default_factory=dict)
    supports_tools: bool = True
    stream_usage: bool = True


OPENAI_SETTINGS = ProviderSettings(name="openai", base_url="https://api.openai.com")


def map_message(message: Message) -> dict[str, Any]:
    """Convert a Message to the wire format."""
    if message.role is Role.TOOL_CALL:
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [
                {
                    "id": tool_call.id,
                    "type": "function",
                    "function": {
                        "name": tool_call.name,
                        "arguments": tool_call.arguments or json.dumps(tool_call.inputs),
                    },
                }
                for tool_call in message.tool_calls
            ],
        }

    if message.role is Role.TOOL_RESULT:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content,
        }

    return {"role": message.role.value, "content": message.content}


def tools_payload(tools: list[Tool]) -> list[dict]:
    return [tool.to_openai_function() for tool in tools]


def decode_completion(body: str) -> Message:
    """
    Decode a non-streaming response body into a Message.

    Raises:
        ProtocolError: On invalid JSON or an unexpected shape
    """
    try:
        data = json.loads(body)
        choice = data["choices"][0]
        message = choice["message"]
    except ValueError as e:
        raise ProtocolError(f"Malformed response body: {e}") from e
    except (KeyError, IndexError, TypeError) as e:
        raise ProtocolError(f"Unexpected response shape, missing {e}") from e

    finish_reason = choice.get("finish_reason")
    raw_tool_calls = message.get("tool_calls") or []

    if finish_reason == "tool_calls" or raw_tool_calls:
        tool_calls = []
        for item in raw_tool_calls:
            try:
                name = item["function"]["name"]
                arguments = item["function"].get("arguments") or ""
                call_id = item["id"]
            except (KeyError, TypeError) as e:
                raise ProtocolError(f"Unexpected tool call shape, missing {e}") from e
            tool_calls.append(ToolCall(
                id=call_id,
                name=name,
                arguments=arguments,
                inputs=parse_arguments(name, arguments),
            ))
        if not tool_calls:
            raise ProtocolError("Response finished for tool calls but carries none")

        result = Message.tool_call(tool_calls, content=message.get("content") or "")
        result.add_metadata("tool_calls", tool_calls_payload(tool_calls))
    else:
        result = Message.assistant(message.get("content") or "")

    result.add_metadata("finish_reason", finish_reason)

    usage = decode_usage(data.get("usage"))
    if usage is not None:
        result.set_usage(usage)

    return result


class OpenAIProvider:
    """
    Chat-completions adapter.

    Example:
        provider = OpenAIProvider(api_key="sk-...", model="gpt-4o-mini")
        provider.system_prompt("You are terse.")

        reply = await provider.chat([Message.user("Hi")])

        async with provider.stream([Message.user("Hi")]) as stream:
            async for chunk in stream:
                print(chunk, end="")
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        settings: ProviderSettings = OPENAI_SETTINGS,
        transport: HttpTransport | None = None,
        timeout: float | None = None
    ):
        """
        Args:
            api_key: Bearer token for the backend
            model: Model name
            max_tokens: Completion token limit sent with each request
            settings: Backend settings
            transport: Pre-built transport (tests, shared clients)
            timeout: Default deadline in seconds for chat() and stream()
        """
        self.settings = settings
        self.name = settings.name
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.transport = transport or HttpTransport(
            name=settings.name,
            base_url=settings.base_url,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
                **settings.headers,
            },
        )

        self._system: str | None = None
        self._tools: list[Tool] = []

        logger.debug(f"{self.name} provider ready with model: {model}")

    def system_prompt(self, prompt: str | None) -> "OpenAIProvider":
        self._system = prompt
        return self

    def set_tools(self, tools: list[Tool]) -> "OpenAIProvider":
        """
        Raises:
            ProviderError: If tools are given to a backend without tool support
        """
        if tools and not self.settings.supports_tools:
            raise ProviderError(f"Tools not supported in {self.name} provider", self.name)
        self._tools = list(tools)
        return self

    def build_request(self, messages: list[Message], stream: bool = False) -> dict[str, Any]:
        """Assemble the request payload; the system prompt goes first."""
        wire_messages = [map_message(message) for message in messages]
        if self._system:
            wire_messages.insert(0, {"role": "system", "content": self._system})

        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": wire_messages,
        }
        if self._tools:
            payload["tools"] = tools_payload(self._tools)
        if stream:
            payload["stream"] = True
            if self.settings.stream_usage:
                payload["stream_options"] = {"include_usage": True}
        return payload

    async def chat(self, messages: list[Message], timeout: float | None = None) -> Message:
        """
        Send one request and return the complete reply.

        Raises:
            TransportError: On network or HTTP failure
            ProtocolError: On a malformed response
            ProviderTimeoutError: If the deadline expired
        """
        timeout = timeout if timeout is not None else self.timeout
        payload = self.build_request(messages)

        try:
            async with asyncio.timeout(timeout):
                body = await self.transport.post(self.settings.path, payload)
        except TimeoutError:
            raise ProviderTimeoutError(
                f"{self.name} request exceeded {timeout}s", self.name, timeout=timeout
            ) from None

        try:
            reply = decode_completion(body)
        except ProtocolError as e:
            logger.error(f"{self.name} sent an unreadable response", e)
            raise

        logger.debug(
            f"{self.name} replied ({reply.role.value})",
            {"tool_calls": len(reply.tool_calls)} if reply.tool_calls else None
        )
        return reply

    def stream(
        self,
        messages: list[Message],
        timeout: float | None = None,
        partial_results: bool = False
    ) -> ChatStream:
        """
        Start a streaming request.

        Nothing is sent until the returned stream is first iterated.
        """
        state = StreamState()
        payload = self.build_request(messages, stream=True)
        return ChatStream(
            self._stream_chunks(payload, state),
            state,
            provider=self.name,
            timeout=timeout if timeout is not None else self.timeout,
            partial_results=partial_results,
        )

    async def _stream_chunks(
        self,
        payload: dict[str, Any],
        state: StreamState
    ) -> AsyncGenerator[str, None]:
        state.start()
        lines = self.transport.stream_lines(self.settings.path, payload)
        try:
            async for line in lines:
                data = parse_data_line(line)
                if data is None:
                    continue
                if data == DONE_SENTINEL:
                    break

                for event in decode_frame(data):
                    chunk = state.apply(event)
                    if chunk:
                        yield chunk

            reply = state.finalize()
        except ProtocolError as e:
            logger.error(f"{self.name} stream rejected", e)
            raise
        finally:
            await lines.aclose()

        logger.debug(
            f"{self.name} stream finished ({state.raw_finish_reason})",
            {"tool_calls": len(reply.tool_calls)} if reply.tool_calls else None
        )

    async def aclose(self) -> None:
        await self.transport.aclose()

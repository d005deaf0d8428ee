"""
Log Provider
============

A provider that never calls a model. It logs the prompt it receives and
answers with a fixed sentence, which makes it handy for dry runs of the
whole pipeline (RAG included) without an API key.
"""

from collections.abc import AsyncGenerator

from ragent.chat.messages import Message
from ragent.providers.base import ChatStream
from ragent.providers.streaming import FinishReason, FinishSignal, StreamState, TextDelta
from ragent.tools import Tool
from ragent.utils.logger import Logger

REPLY = "I'm the log ragent driver"


class LogProvider:
    name = "log"

    def __init__(self, logger: Logger | None = None, reply: str = REPLY):
        self.logger = logger or Logger("LogProvider")
        self.reply = reply
        self._system: str | None = None

    def system_prompt(self, prompt: str | None) -> "LogProvider":
        self._system = prompt
        return self

    def set_tools(self, tools: list[Tool]) -> "LogProvider":
        return self

    def _log_prompt(self, messages: list[Message]) -> None:
        self.logger.debug(
            "Prompting AI with:",
            {
                "system": self._system,
                "messages": [message.to_dict() for message in messages],
            }
        )

    async def chat(self, messages: list[Message], timeout: float | None = None) -> Message:
        self._log_prompt(messages)
        return Message.assistant(self.reply)

    def stream(
        self,
        messages: list[Message],
        timeout: float | None = None,
        partial_results: bool = False
    ) -> ChatStream:
        state = StreamState()
        return ChatStream(
            self._chunks(messages, state),
            state,
            provider=self.name,
            timeout=timeout,
            partial_results=partial_results,
        )

    async def _chunks(self, messages: list[Message], state: StreamState) -> AsyncGenerator[str, None]:
        self._log_prompt(messages)
        state.start()
        chunk = state.apply(TextDelta(self.reply))
        if chunk:
            yield chunk
        state.apply(FinishSignal(FinishReason.STOP, "stop"))
        state.finalize()

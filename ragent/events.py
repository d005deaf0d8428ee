"""
Lifecycle Events
================

Agents and the RAG pipeline announce what they are doing so callers can
trace a request without patching the code:

    def trace(event: str, payload) -> None:
        print(event, payload)

    rag.observe(trace)                                  # every event
    rag.observe(trace, "rag-vectorstore-result")        # one event

Listeners are called synchronously, in registration order, with the
event name and a frozen payload dataclass (or None). A listener that
raises is logged and skipped; it never interrupts the pipeline.
"""

from dataclasses import dataclass
from typing import Any, Callable

from ragent.chat.messages import Message, ToolCall
from ragent.utils.logger import Logger

logger = Logger("Events")

Listener = Callable[[str, Any], None]

ALL_EVENTS = "*"

# Agent events
CHAT_START = "chat-start"
CHAT_STOP = "chat-stop"
TOOL_CALLING = "tool-calling"
TOOL_CALLED = "tool-called"

# RAG events
RAG_START = "rag-start"
RAG_STOP = "rag-stop"
RAG_SEARCHING = "rag-vectorstore-searching"
RAG_RESULT = "rag-vectorstore-result"
RAG_INSTRUCTIONS_CHANGING = "rag-instructions-changing"
RAG_INSTRUCTIONS_CHANGED = "rag-instructions-changed"


@dataclass(frozen=True)
class ChatStart:
    message: Message


@dataclass(frozen=True)
class ChatStop:
    message: Message


@dataclass(frozen=True)
class ToolCalling:
    tool_call: ToolCall


@dataclass(frozen=True)
class ToolCalled:
    tool_call: ToolCall
    result: Message


@dataclass(frozen=True)
class VectorStoreSearching:
    question: Message


@dataclass(frozen=True)
class VectorStoreResult:
    question: Message
    documents: tuple  # tuple[Document, ...] after deduplication


@dataclass(frozen=True)
class InstructionsChanging:
    instructions: str | None


@dataclass(frozen=True)
class InstructionsChanged:
    previous: str | None
    current: str


class Observable:
    """Listener registry mixed into Agent and RAG."""

    def __init__(self):
        self._listeners: list[tuple[str, Listener]] = []

    def observe(self, listener: Listener, event: str = ALL_EVENTS) -> "Observable":
        """Register a listener for one event name, or for all events."""
        self._listeners.append((event, listener))
        return self

    def unobserve(self, listener: Listener) -> None:
        self._listeners = [(e, l) for e, l in self._listeners if l is not listener]

    def notify(self, event: str, payload: Any = None) -> None:
        """Deliver an event to the matching listeners, isolating failures."""
        for name, listener in list(self._listeners):
            if name != ALL_EVENTS and name != event:
                continue
            try:
                listener(event, payload)
            except Exception as e:
                logger.warning(f"Listener failed on '{event}'", error=e)

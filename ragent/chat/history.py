"""
Chat History
============

An ordered, size-bounded buffer of conversation messages.

Every append runs the trimming policy so the retained messages always
fit in the configured context window:

1. Drop the oldest messages first. A tool-call message is dropped
   together with the tool results that answer it.
2. Never drop the active system message (the latest SYSTEM message)
   while anything else can go.
3. Never drop the message being appended. A tool result being appended
   keeps the tool call it answers, and that call's other results, with it.
   If the system message plus this newest unit still exceed the window,
   the system message goes; a newest unit larger than the window on its
   own is kept.

Size is measured by a pluggable estimator (characters by default). The
trimming decision is a pure function, trim_to_window(); the history
persists the result through a ChatStore only after it is computed, and
commits it in memory only after the store accepted it. A failed save
leaves both the in-memory list and the store as they were.

Example:
    history = ChatHistory(store=FileChatStore("data/chats"), key="U123",
                          context_window=8000)
    history.append(Message.user("Hello!"))
    for message in history.all():
        print(message.role, message.content)
"""

import threading
from typing import Callable

from ragent.chat.messages import Message, Role
from ragent.chat.stores import ChatStore
from ragent.utils.logger import Logger

logger = Logger("ChatHistory")

SizeEstimator = Callable[[Message], int]


def character_count(message: Message) -> int:
    """Size of a message in characters, tool-call names and arguments included."""
    size = len(message.content)
    for tool_call in message.tool_calls:
        size += len(tool_call.name) + len(tool_call.arguments)
    return size


def approx_tokens(message: Message) -> int:
    """Rough token estimate: four characters per token, at least one."""
    return max(1, (character_count(message) + 3) // 4)


def _active_system_index(messages: list[Message]) -> int | None:
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role is Role.SYSTEM:
            return index
    return None


def _newest_group(messages: list[Message]) -> set[int]:
    """
    Indexes of the newest unit: the last message and, when it is a tool
    result, the tool call it answers plus that call's other results.
    """
    last = len(messages) - 1
    newest = messages[last]
    if newest.role is not Role.TOOL_RESULT:
        return {last}

    for index in range(last - 1, -1, -1):
        message = messages[index]
        if message.role is not Role.TOOL_CALL:
            continue
        answered = {tool_call.id for tool_call in message.tool_calls}
        if newest.tool_call_id in answered:
            return {index} | {
                i for i in range(index + 1, last + 1)
                if messages[i].role is Role.TOOL_RESULT and messages[i].tool_call_id in answered
            }
    return {last}


def trim_to_window(
    messages: list[Message],
    context_window: int,
    estimate_size: SizeEstimator = character_count
) -> list[Message]:
    """
    Return the messages to retain so their total size fits the window.

    Pure and deterministic; the input list is not modified. The newest
    message is always retained. When it is a tool result, the tool call
    it answers (with the call's other results) is retained with it, so
    the history never starts with an unanswered tool result.

    Args:
        messages: Current history with the newest message last
        context_window: Maximum total size in estimator units
        estimate_size: Size function applied to each message

    Returns:
        The retained messages, in their original order
    """
    if not messages:
        return []

    newest = _newest_group(messages)
    system_index = _active_system_index(messages[:-1])
    # (message, size, protected, newest)
    entries = [
        (message, estimate_size(message), index == system_index, index in newest)
        for index, message in enumerate(messages)
    ]
    total = sum(entry[1] for entry in entries)

    while total > context_window:
        removable = next(
            (i for i, (_, _, protected, in_newest) in enumerate(entries)
             if not protected and not in_newest),
            None
        )
        if removable is None:
            break

        removed, size, _, _ = entries.pop(removable)
        total -= size

        if removed.role is Role.TOOL_CALL:
            answered = {tool_call.id for tool_call in removed.tool_calls}
            kept = []
            for entry in entries:
                message = entry[0]
                if message.role is Role.TOOL_RESULT and message.tool_call_id in answered:
                    total -= entry[1]
                    continue
                kept.append(entry)
            entries = kept

    if total > context_window:
        # Only the system message and the newest unit are left
        entries = [entry for entry in entries if entry[3]]

    return [entry[0] for entry in entries]


class ChatHistory:
    """
    Size-bounded conversation history with optional persistence.

    Reads return snapshots; appends and clears are serialized with a lock,
    so one history instance can be shared by concurrent requests.

    Attributes:
        key: Conversation key used with the store
        context_window: Maximum retained size in estimator units
    """

    def __init__(
        self,
        store: ChatStore | None = None,
        key: str = "default",
        context_window: int = 50000,
        estimate_size: SizeEstimator = character_count
    ):
        """
        Initialize the history, loading any stored messages.

        Args:
            store: Optional persistence backend
            key: Conversation key
            context_window: Maximum retained size
            estimate_size: Message size function

        Raises:
            ValueError: If context_window is not positive
            PersistenceError: If the store cannot be read
        """
        if context_window <= 0:
            raise ValueError("context_window must be a positive integer")

        self.store = store
        self.key = key
        self.context_window = context_window
        self.estimate_size = estimate_size
        self._lock = threading.RLock()

        loaded = store.load(key) if store is not None else None
        self._messages: list[Message] = list(loaded or [])

        if self._messages:
            logger.debug(f"Loaded {len(self._messages)} messages for '{key}'")

    def append(self, message: Message) -> None:
        """
        Add a message to the tail and trim to the context window.

        Raises:
            PersistenceError: If the store rejects the new state; the
                in-memory history is left unchanged
        """
        with self._lock:
            candidate = self._messages + [message]
            retained = trim_to_window(candidate, self.context_window, self.estimate_size)

            dropped = len(candidate) - len(retained)
            if dropped:
                logger.debug(f"Trimmed {dropped} messages from '{self.key}'")
            if self.estimate_size(message) > self.context_window:
                logger.warning(
                    "Message is larger than the context window",
                    {"key": self.key, "context_window": self.context_window}
                )

            if self.store is not None:
                self.store.save(self.key, retained)

            self._messages = retained

    def all(self) -> tuple[Message, ...]:
        """Read-only snapshot of the retained messages, oldest first."""
        with self._lock:
            return tuple(self._messages)

    def clear(self) -> None:
        """
        Empty the history and delete its stored state.

        Raises:
            PersistenceError: If the store cannot delete its state; the
                in-memory history is left unchanged
        """
        with self._lock:
            if self.store is not None:
                self.store.delete(self.key)
            self._messages = []
            logger.info(f"Cleared history '{self.key}'")

    def total_size(self) -> int:
        """Sum of estimated sizes of the retained messages."""
        with self._lock:
            return sum(self.estimate_size(message) for message in self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

"""
Chat History Stores
===================

Persistence backends for ChatHistory. A store keeps one ordered list of
messages per conversation key:

    load(key)            -> list[Message] | None   (None when nothing is stored)
    save(key, messages)  -> None                   (replaces the stored list)
    delete(key)          -> None                   (PersistenceError if absent)

Two implementations are provided:
- InMemoryChatStore: a dict, useful for tests and short-lived sessions
- FileChatStore: one JSON file per key, "<prefix><key><ext>" inside a
  directory that must already exist
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from ragent.chat.messages import Message
from ragent.errors import PersistenceError
from ragent.utils.logger import Logger

logger = Logger("ChatStore")


class ChatStore(Protocol):
    """Persistence contract consumed by ChatHistory."""

    def load(self, key: str) -> list[Message] | None: ...

    def save(self, key: str, messages: list[Message]) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryChatStore:
    """Keeps serialized messages in a dict; nothing survives a restart."""

    def __init__(self):
        self._data: dict[str, list[dict]] = {}

    def load(self, key: str) -> list[Message] | None:
        if key not in self._data:
            return None
        return [Message.from_dict(item) for item in self._data[key]]

    def save(self, key: str, messages: list[Message]) -> None:
        self._data[key] = [message.to_dict() for message in messages]

    def delete(self, key: str) -> None:
        if key not in self._data:
            raise PersistenceError(f"No stored history for key '{key}'")
        del self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileChatStore:
    """
    File-based store: each conversation is a JSON array of messages.

    Writes go to a temporary file in the same directory which then
    replaces the target, so a crash mid-write never leaves a truncated
    history behind.

    Example:
        store = FileChatStore(Path("data/chats"))
        history = ChatHistory(store=store, key="U123")
    """

    def __init__(self, directory: Path | str, prefix: str = "ragent_", ext: str = ".chat"):
        """
        Args:
            directory: Existing directory for the chat files
            prefix: File name prefix
            ext: File name extension

        Raises:
            PersistenceError: If the directory does not exist
        """
        self.directory = Path(directory)
        self.prefix = prefix
        self.ext = ext

        if not self.directory.is_dir():
            raise PersistenceError(f"Directory '{self.directory}' does not exist")

    def path_for(self, key: str) -> Path:
        """
        Raises:
            PersistenceError: If the key is empty or contains a path separator
        """
        separators = {"/", "\\", os.sep, os.altsep} - {None}
        if not key or any(sep in key for sep in separators):
            raise PersistenceError(f"Invalid history key '{key}'")
        return self.directory / f"{self.prefix}{key}{self.ext}"

    def load(self, key: str) -> list[Message] | None:
        path = self.path_for(key)
        if not path.is_file():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return [Message.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PersistenceError(f"Unable to read history file '{path}': {e}") from e

    def save(self, key: str, messages: list[Message]) -> None:
        path = self.path_for(key)
        payload = [message.to_dict() for message in messages]

        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=self.ext)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, default=str)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Unable to write history file '{path}': {e}") from e

        logger.debug(f"Saved {len(messages)} messages to {path.name}")

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(f"Unable to delete file '{path}': {e}") from e

"""
Logger Utility
==============

Context-aware console logging used by every component of the agent.

Each module creates its own logger with a context name:

    logger = Logger("Agent")
    logger.info("Turn started")

and nested operations derive child loggers so a line can be traced back
to where it came from:

    stream_logger = logger.child("Stream")   # [Agent:Stream]

Lines are written as:

    [2024-01-31T10:30:00] [INFO] [Agent] Turn started

with optional structured data rendered as indented JSON underneath.
Errors go to stderr, everything else to stdout.

The minimum level comes from the LOG_LEVEL environment variable and can
be changed at runtime with set_level() (the CLI does this after loading
configuration).
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Log levels; a message is emitted when its level >= the minimum."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def parse_level(value: str | None, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """
    Map a level name such as "debug" or "WARN" to a LogLevel.

    Unknown or empty names give the default.
    """
    if not value:
        return default
    return _LEVEL_NAMES.get(value.strip().upper(), default)


# Process-wide minimum level shared by all Logger instances
_min_level: LogLevel = parse_level(os.getenv("LOG_LEVEL"))


def set_level(level: str | LogLevel) -> None:
    """
    Change the minimum level for every logger in the process.

    Args:
        level: A LogLevel or a level name ("debug", "info", ...)
    """
    global _min_level
    _min_level = level if isinstance(level, LogLevel) else parse_level(level)


class Logger:
    """
    A context-aware logger with colored output.

    Example:
        logger = Logger("ToolExecutor")
        logger.info("Executing tool: lookup")

        child = logger.child("lookup")
        child.debug("Inputs", {"city": "Rome"})
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix shown in brackets on every line (e.g. "Agent")
        """
        self.context = context

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is "<parent>:<child>"."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        """True when a message at this level would be printed."""
        return level >= _min_level

    def _format_message(self, level_name: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level_name}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message (only shown with LOG_LEVEL=debug)."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an info message."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(
        self,
        message: str,
        data: dict[str, Any] | None = None,
        error: Exception | None = None
    ) -> None:
        """
        Log a warning.

        Warnings cover recoverable faults: a tool that failed, a listener
        that raised, a history that had to be trimmed hard.

        Args:
            message: The warning message
            data: Optional structured data
            error: Optional exception whose type and message are appended
        """
        if error is not None:
            data = {**(data or {}), **_describe(error)}
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: Exception | None = None) -> None:
        """
        Log an error, optionally with the exception that caused it.

        Args:
            message: The error message
            error: Optional exception to include details from
        """
        data = _describe(error) if error is not None else None
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


def _describe(error: Exception) -> dict[str, str]:
    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }


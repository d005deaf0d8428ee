"""
Message Model
=============

Value types for one turn of a conversation.

A Message has a role, text content (empty for a pure tool-call turn),
and optionally:
- usage: token counts reported by the provider for this reply
- metadata: free-form annotations (raw tool_calls payload, finish reason)
- tool_calls: the ToolCall descriptors the model asked for
- tool_call_id / tool_name: on tool-result messages, the call they answer

Roles:
    SYSTEM       instruction message, kept by the history during trimming
    USER         a user turn
    ASSISTANT    a final model answer
    TOOL_CALL    a model turn requesting one or more tools
    TOOL_RESULT  the output of one tool, correlated by tool_call_id

Messages serialize to plain dicts (to_dict / from_dict) for persistence.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class Usage:
    """Token usage reported by the provider."""
    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> dict:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
        }


@dataclass
class ToolCall:
    """
    A tool invocation requested by the model.

    Attributes:
        id: Call ID, unique within one provider response
        name: The tool name
        arguments: Raw JSON argument text exactly as the provider sent it
        inputs: Parsed arguments
    """
    id: str
    name: str
    arguments: str = ""
    inputs: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "arguments": self.arguments,
            "inputs": self.inputs,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ToolCall":
        return cls(
            id=data["id"],
            name=data["name"],
            arguments=data.get("arguments", ""),
            inputs=data.get("inputs") or {},
        )


@dataclass
class Message:
    """A single message in the conversation."""
    role: Role
    content: str = ""
    usage: Usage | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None
    tool_name: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    # ---------------------------------------------------------------- factories

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, usage: Usage | None = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, usage=usage)

    @classmethod
    def tool_call(cls, tool_calls: list[ToolCall], content: str = "") -> "Message":
        return cls(role=Role.TOOL_CALL, content=content, tool_calls=list(tool_calls))

    @classmethod
    def tool_result(cls, tool_call_id: str, tool_name: str, content: str) -> "Message":
        return cls(
            role=Role.TOOL_RESULT,
            content=content,
            tool_call_id=tool_call_id,
            tool_name=tool_name,
        )

    # ---------------------------------------------------------------- helpers

    @property
    def has_tool_calls(self) -> bool:
        return self.role is Role.TOOL_CALL and bool(self.tool_calls)

    def add_metadata(self, key: str, value: Any) -> "Message":
        self.metadata[key] = value
        return self

    def set_usage(self, usage: Usage) -> "Message":
        self.usage = usage
        return self

    # ---------------------------------------------------------------- serialization

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        data: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.usage is not None:
            data["usage"] = self.usage.to_dict()
        if self.metadata:
            data["metadata"] = self.metadata
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_name is not None:
            data["tool_name"] = self.tool_name
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        usage = data.get("usage")
        timestamp = data.get("timestamp")
        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            usage=Usage(**usage) if usage else None,
            metadata=data.get("metadata") or {},
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls", [])],
            tool_call_id=data.get("tool_call_id"),
            tool_name=data.get("tool_name"),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
        )

"""
Streaming State Machine
=======================

Turns server-sent-event frames from a chat-completions stream into text
chunks and, at the end, one finalized Message.

Raw JSON never leaves this module. Each frame is decoded into tagged
events:

    TextDelta          a piece of assistant text
    ToolCallFragment   part of a tool call (id/name on the first piece,
                       argument text on every piece)
    FinishSignal       why generation stopped
    UsageInfo          token counts, usually on a trailing frame

StreamState consumes those events in arrival order:

    IDLE ──start()──▶ STREAMING ──finish: tool_calls──▶ TOOL_CALL_PENDING ─┐
                          │                                                 ├─finalize()─▶ DONE
                          └──────finish: stop/length──▶ COMPLETING ─────────┘

Text is returned to the caller as soon as it arrives while STREAMING.
After a finish signal no more text is produced; trailing frames are
only read for usage. Tool-call arguments are concatenated per call in
the exact order received and parsed as JSON only when finalized.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ragent.chat.messages import Message, ToolCall, Usage
from ragent.errors import ProtocolError

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class FinishReason(str, Enum):
    NONE = "none"
    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    ERROR = "error"

    @classmethod
    def from_wire(cls, value: str) -> "FinishReason":
        if value in ("tool_calls", "function_call"):
            return cls.TOOL_CALLS
        if value == "length":
            return cls.LENGTH
        if value == "error":
            return cls.ERROR
        # stop, content_filter and vendor-specific values end the turn normally
        return cls.STOP


class StreamPhase(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    TOOL_CALL_PENDING = "tool_call_pending"
    COMPLETING = "completing"
    DONE = "done"


# ==============================================================================
# Decoded events
# ==============================================================================

@dataclass(frozen=True)
class TextDelta:
    content: str


@dataclass(frozen=True)
class ToolCallFragment:
    index: int | None
    call_id: str | None
    name: str | None
    arguments: str


@dataclass(frozen=True)
class FinishSignal:
    reason: FinishReason
    raw: str


@dataclass(frozen=True)
class UsageInfo:
    usage: Usage


StreamEvent = Union[TextDelta, ToolCallFragment, FinishSignal, UsageInfo]


def parse_data_line(line: str) -> str | None:
    """
    Extract the payload of an SSE "data:" line.

    Returns None for anything that is not a data line: blank keep-alive
    lines, ": comments", "event:" and "id:" fields.
    """
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def decode_usage(data: Any) -> Usage | None:
    """Build a Usage from a provider "usage" object; None when absent or incomplete."""
    if not isinstance(data, dict):
        return None
    prompt = data.get("prompt_tokens")
    completion = data.get("completion_tokens")
    if not isinstance(prompt, int) or not isinstance(completion, int):
        return None
    return Usage(prompt_tokens=prompt, completion_tokens=completion)


def decode_frame(payload: str) -> list[StreamEvent]:
    """
    Decode one frame payload into events.

    Raises:
        ProtocolError: On invalid JSON, an error frame, or an unexpected shape
    """
    try:
        frame = json.loads(payload)
    except ValueError as e:
        raise ProtocolError(f"Malformed stream frame: {e}") from e

    if not isinstance(frame, dict):
        raise ProtocolError("Stream frame is not a JSON object")

    if "error" in frame:
        error = frame["error"]
        message = error.get("message") if isinstance(error, dict) else error
        raise ProtocolError(f"Provider reported an error mid-stream: {message}")

    choices = frame.get("choices") or []
    if not isinstance(choices, list):
        raise ProtocolError("Stream frame 'choices' is not a list")

    events: list[StreamEvent] = []

    if choices:
        choice = choices[0]
        if not isinstance(choice, dict):
            raise ProtocolError("Stream frame choice is not an object")

        delta = choice.get("delta") or {}
        if not isinstance(delta, dict):
            raise ProtocolError("Stream frame 'delta' is not an object")

        content = delta.get("content")
        if content:
            events.append(TextDelta(content))

        for fragment in delta.get("tool_calls") or []:
            events.append(_decode_fragment(fragment))

        finish = choice.get("finish_reason")
        if finish:
            events.append(FinishSignal(FinishReason.from_wire(finish), finish))

    usage = decode_usage(frame.get("usage"))
    if usage is not None:
        events.append(UsageInfo(usage))

    return events


def _decode_fragment(fragment: Any) -> ToolCallFragment:
    if not isinstance(fragment, dict):
        raise ProtocolError("Tool call fragment is not an object")
    function = fragment.get("function") or {}
    return ToolCallFragment(
        index=fragment.get("index"),
        call_id=fragment.get("id") or None,
        name=function.get("name") or None,
        arguments=function.get("arguments") or "",
    )


def parse_arguments(tool_name: str, arguments: str) -> dict[str, Any]:
    """
    Parse tool-call argument text; empty text means no arguments.

    Raises:
        ProtocolError: If the text is not a JSON object
    """
    if not arguments.strip():
        return {}
    try:
        inputs = json.loads(arguments)
    except ValueError as e:
        raise ProtocolError(f"Invalid JSON arguments for tool '{tool_name}': {e}") from e
    if not isinstance(inputs, dict):
        raise ProtocolError(f"Arguments for tool '{tool_name}' are not a JSON object")
    return inputs


def tool_calls_payload(tool_calls: list[ToolCall]) -> list[dict]:
    """Provider-shaped tool_calls list, kept in message metadata."""
    return [
        {
            "id": tool_call.id,
            "type": "function",
            "function": {"name": tool_call.name, "arguments": tool_call.arguments},
        }
        for tool_call in tool_calls
    ]


# ==============================================================================
# State
# ==============================================================================

@dataclass
class StreamState:
    """
    Per-request streaming state. Create one for every streaming call and
    throw it away afterwards.

    Attributes:
        phase: Current state machine phase
        text: Assistant text accumulated so far
        pending_tool_calls: Partial tool calls keyed by call ID, in arrival order
        finish_reason: Finish reason once signalled
        usage: Usage from any frame, if the provider sent one
        message: The finalized message, set only once DONE
    """
    phase: StreamPhase = StreamPhase.IDLE
    text: str = ""
    pending_tool_calls: dict[str, ToolCall] = field(default_factory=dict)
    finish_reason: FinishReason = FinishReason.NONE
    raw_finish_reason: str | None = None
    usage: Usage | None = None
    message: Message | None = None
    _call_ids_by_index: dict[int, str] = field(default_factory=dict)

    def start(self) -> None:
        if self.phase is not StreamPhase.IDLE:
            raise RuntimeError(f"Stream already started (phase: {self.phase.value})")
        self.phase = StreamPhase.STREAMING

    def apply(self, event: StreamEvent) -> str | None:
        """
        Feed one decoded event.

        Returns:
            The text to hand to the consumer, or None
        """
        if isinstance(event, UsageInfo):
            self.usage = event.usage
            return None

        if self.phase is not StreamPhase.STREAMING:
            # Finish already signalled: only usage is still of interest
            return None

        if isinstance(event, TextDelta):
            self.text += event.content
            return event.content

        if isinstance(event, ToolCallFragment):
            self._merge_fragment(event)
            return None

        if isinstance(event, FinishSignal):
            self.finish_reason = event.reason
            self.raw_finish_reason = event.raw
            if event.reason is FinishReason.ERROR:
                raise ProtocolError("Provider finished the stream with an error")
            if event.reason is FinishReason.TOOL_CALLS or self.pending_tool_calls:
                self.phase = StreamPhase.TOOL_CALL_PENDING
            else:
                self.phase = StreamPhase.COMPLETING
            return None

        raise ProtocolError(f"Unexpected stream event: {event!r}")

    def _merge_fragment(self, fragment: ToolCallFragment) -> None:
        call_id = fragment.call_id
        if call_id is None and fragment.index is not None:
            call_id = self._call_ids_by_index.get(fragment.index)
        if call_id is None:
            raise ProtocolError("Tool call fragment does not belong to any known call")

        pending = self.pending_tool_calls.get(call_id)
        if pending is None:
            pending = ToolCall(id=call_id, name=fragment.name or "")
            self.pending_tool_calls[call_id] = pending
            if fragment.index is not None:
                self._call_ids_by_index[fragment.index] = call_id
        elif fragment.name and not pending.name:
            pending.name = fragment.name

        pending.arguments += fragment.arguments

    def finalize(self) -> Message:
        """
        Build the final message once the frames are exhausted.

        Raises:
            ProtocolError: If no finish reason arrived, or tool-call
                arguments are not valid JSON
        """
        if self.phase is StreamPhase.STREAMING:
            raise ProtocolError("Stream ended without a finish reason")
        if self.phase not in (StreamPhase.TOOL_CALL_PENDING, StreamPhase.COMPLETING):
            raise RuntimeError(f"Cannot finalize a stream in phase '{self.phase.value}'")

        if self.phase is StreamPhase.TOOL_CALL_PENDING:
            tool_calls = list(self.pending_tool_calls.values())
            for tool_call in tool_calls:
                tool_call.inputs = parse_arguments(tool_call.name, tool_call.arguments)
            message = Message.tool_call(tool_calls, content=self.text)
            message.add_metadata("tool_calls", tool_calls_payload(tool_calls))
        else:
            message = Message.assistant(self.text)

        message.add_metadata("finish_reason", self.raw_finish_reason)
        if self.usage is not None:
            message.set_usage(self.usage)

        self.phase = StreamPhase.DONE
        self.message = message
        return message

"""
Error Taxonomy
==============

Every error raised by the package derives from RagentError.

    RagentError
    ├── ProviderError                 infrastructure fault talking to a model
    │   ├── TransportError            network / HTTP layer, retryable by the caller
    │   ├── ProtocolError             malformed or unexpected payload, never retried
    │   └── ProviderTimeoutError      the caller's deadline expired
    ├── ToolError                     recoverable inside the tool-call loop
    │   ├── UnknownToolError
    │   ├── DuplicateToolError        raised to the caller at registration time
    │   ├── InvalidToolInputError
    │   └── ToolExecutionError
    ├── MaxToolDepthExceededError     the model is stuck in a tool-call cycle
    └── PersistenceError              history store failure, prior state kept

Tool errors raised while the loop runs are turned into tool-result
messages the model can read; they never reach the caller. Provider errors
abort the current turn and propagate.
"""


class RagentError(Exception):
    """Base class for all package errors."""


# ==============================================================================
# Provider errors
# ==============================================================================

class ProviderError(RagentError):
    """The model could not produce an answer because of an infrastructure fault."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class TransportError(ProviderError):
    """Network or HTTP-level failure."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None
    ):
        super().__init__(message, provider)
        self.status_code = status_code


class ProtocolError(ProviderError):
    """A frame or response body did not have the expected shape."""


class ProviderTimeoutError(ProviderError):
    """
    A provider call exceeded its deadline.

    Attributes:
        timeout: The deadline in seconds
        partial_text: Text streamed before the deadline; only populated
            when the caller asked for partial results, otherwise None
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        timeout: float | None = None,
        partial_text: str | None = None
    ):
        super().__init__(message, provider)
        self.timeout = timeout
        self.partial_text = partial_text


# ==============================================================================
# Tool errors
# ==============================================================================

class ToolError(RagentError):
    """Base class for tool failures; carries the tool name."""

    def __init__(self, message: str, tool_name: str):
        super().__init__(message)
        self.tool_name = tool_name


class UnknownToolError(ToolError):
    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found", tool_name)


class DuplicateToolError(ToolError):
    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' is already registered", tool_name)


class InvalidToolInputError(ToolError):
    def __init__(self, tool_name: str, parameter: str):
        super().__init__(
            f"Missing required parameter '{parameter}' for tool '{tool_name}'",
            tool_name
        )
        self.parameter = parameter


class ToolExecutionError(ToolError):
    """The tool body raised; the original message is preserved."""

    def __init__(self, tool_name: str, original_message: str):
        super().__init__(f"Tool '{tool_name}' failed: {original_message}", tool_name)
        self.original_message = original_message


# ==============================================================================
# Loop and persistence errors
# ==============================================================================

class MaxToolDepthExceededError(RagentError):
    """The model kept requesting tools past the configured depth."""

    def __init__(self, depth: int):
        super().__init__(
            f"Reached the maximum tool-call depth ({depth}) without a final answer"
        )
        self.depth = depth


class PersistenceError(RagentError):
    """The chat history store could not load, save or delete its state."""

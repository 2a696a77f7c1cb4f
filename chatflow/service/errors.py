from __future__ import annotations

from typing import Optional


class ChatFlowError(Exception):
    """Base error type for all chat pipeline failures."""


class ConfigurationError(ChatFlowError):
    """Misconfiguration of models, stages, tools, or settings."""


class DuplicateToolError(ConfigurationError):
    """Two tool callbacks were registered under the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate tool callback name: {name!r}")
        self.name = name


class ToolNotFoundError(ConfigurationError):
    """The model requested a tool that no registered callback provides."""

    def __init__(self, name: str, available: Optional[list[str]] = None) -> None:
        super().__init__(
            f"No tool callback found for tool name: {name!r}. "
            f"Available: {available or '[]'}"
        )
        self.name = name


class PolicyDenied(ChatFlowError):
    """Request violates policy (e.g. disallowed model)."""


class ToolExecutionError(ChatFlowError):
    """Raised by a tool callback when it cannot produce a result."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class TransportError(ChatFlowError):
    """Network or HTTP failure reported by the transport."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StreamParseError(TransportError):
    """A server-sent event frame could not be decoded."""


class ModelProviderError(ChatFlowError):
    """Unexpected failure raised from a model invocation."""


class OutputParseError(ChatFlowError):
    """The model answer could not be parsed into the requested entity type."""

    def __init__(self, message: str, text: str = "") -> None:
        super().__init__(message)
        self.text = text


__all__ = [
    "ChatFlowError",
    "ConfigurationError",
    "DuplicateToolError",
    "ToolNotFoundError",
    "PolicyDenied",
    "ToolExecutionError",
    "TransportError",
    "StreamParseError",
    "ModelProviderError",
    "OutputParseError",
]

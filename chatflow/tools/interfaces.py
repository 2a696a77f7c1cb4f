"""Tool callback interface for the chat pipeline."""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable

from chatflow.types.tools import ToolDefinition


@runtime_checkable
class ToolCallback(Protocol):
    """Binds one ToolDefinition to something the tool loop can invoke."""

    def definition(self) -> ToolDefinition:
        """Return the definition exposed to the model."""
        ...

    def call(self, arguments_json: str, context: Dict[str, Any]) -> str:
        """Execute with the raw JSON arguments chosen by the model.

        May raise; the tool loop turns the failure into a tool-result message.
        """
        ...


__all__ = ["ToolCallback", "ToolDefinition"]

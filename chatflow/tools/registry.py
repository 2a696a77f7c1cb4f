"""Registry of tool callbacks by name, built once from an explicit list."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from chatflow.service.errors import DuplicateToolError, ToolNotFoundError
from chatflow.types.tools import ToolDefinition

from .interfaces import ToolCallback


class ToolRegistry:
    """Maps tool name to callback for one client or one request.

    Duplicate names are a configuration error and fail at construction.
    """

    def __init__(self, callbacks: Iterable[ToolCallback] = ()) -> None:
        self._callbacks: Dict[str, ToolCallback] = {}
        for callback in callbacks:
            name = callback.definition().name
            if name in self._callbacks:
                raise DuplicateToolError(name)
            self._callbacks[name] = callback

    def __len__(self) -> int:
        return len(self._callbacks)

    def __contains__(self, name: str) -> bool:
        return name in self._callbacks

    def get(self, name: str) -> Optional[ToolCallback]:
        """Return the callback for ``name``, or None if not registered."""
        return self._callbacks.get(name)

    def resolve(self, name: str) -> ToolCallback:
        """Return the callback for ``name``. Raises ToolNotFoundError if missing."""
        callback = self._callbacks.get(name)
        if callback is None:
            raise ToolNotFoundError(name, list(self._callbacks))
        return callback

    def callbacks(self) -> List[ToolCallback]:
        return list(self._callbacks.values())

    def definitions(self) -> List[ToolDefinition]:
        return [cb.definition() for cb in self._callbacks.values()]

    def merged_with(self, callbacks: Iterable[ToolCallback]) -> "ToolRegistry":
        """Return a new registry holding these callbacks followed by ``callbacks``."""
        return ToolRegistry([*self._callbacks.values(), *callbacks])


__all__ = ["ToolRegistry"]

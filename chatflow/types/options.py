from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ChatOptions(BaseModel):
    """Model parameters for a chat call. Every field is optional."""

    model_config = ConfigDict(frozen=True)

    model: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    stop: Optional[List[str]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    parallel_tool_calls: Optional[bool] = None
    extra_body: Dict[str, Any] = Field(default_factory=dict)

    def merge(self, other: Optional["ChatOptions"]) -> "ChatOptions":
        """Return a copy with the non-None fields of ``other`` laid over this one."""
        if other is None:
            return self
        update = {
            k: v
            for k, v in other.model_dump(exclude={"extra_body"}).items()
            if v is not None
        }
        if other.extra_body:
            update["extra_body"] = {**self.extra_body, **other.extra_body}
        return self.model_copy(update=update)


__all__ = ["ChatOptions"]

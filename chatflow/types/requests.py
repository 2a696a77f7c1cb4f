from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatflow.service.errors import DuplicateToolError

from .messages import ImagePart, Message
from .options import ChatOptions
from .tools import ToolDefinition


class ChatRequest(BaseModel):
    """Unit of work passed down the stage chain.

    The model itself is immutable; ``context`` is a plain dict that stages use
    to hand data to later stages or back to the caller.
    """

    model_config = ConfigDict(frozen=True)

    messages: List[Message]
    options: ChatOptions = Field(default_factory=ChatOptions)
    tool_callbacks: List[Any] = Field(default_factory=list)  # ToolCallback implementations
    tool_definitions: List[ToolDefinition] = Field(default_factory=list)  # set by the tool loop
    context: Dict[str, Any] = Field(default_factory=dict)
    media: List[ImagePart] = Field(default_factory=list)

    @field_validator("tool_callbacks")
    @classmethod
    def _unique_tool_names(cls, v: List[Any]) -> List[Any]:
        seen = set()
        for callback in v:
            name = callback.definition().name
            if name in seen:
                raise DuplicateToolError(name)
            seen.add(name)
        return v

    @property
    def run_id(self) -> str:
        return str(self.context.get("run_id", ""))


__all__ = ["ChatRequest"]

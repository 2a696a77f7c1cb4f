from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .messages import Message, ToolCall


FinishReason = Literal["stop", "length", "tool_calls", "content_filter"]


class Usage(BaseModel):
    """Token accounting. Adding two values sums every counter."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        if other is None:
            return self
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    def is_empty(self) -> bool:
        return not (self.prompt_tokens or self.completion_tokens or self.total_tokens)


class Generation(BaseModel):
    """One candidate answer of a response."""

    model_config = ConfigDict(frozen=True)

    index: int = 0
    message: Message
    finish_reason: Optional[FinishReason] = None


class ChatResponse(BaseModel):
    """Normalized response from a model or from the stage chain."""

    model_config = ConfigDict(frozen=True)

    generations: List[Generation] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    model: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ChatResponse":
        return cls()

    @property
    def result(self) -> Optional[Generation]:
        return self.generations[0] if self.generations else None

    @property
    def content(self) -> str:
        """Answer text of the first generation ("" when there is none)."""
        return self.result.message.text if self.result else ""

    @property
    def tool_calls(self) -> List[ToolCall]:
        """Tool calls of the first generation that requests any."""
        for gen in self.generations:
            if gen.message.tool_calls:
                return list(gen.message.tool_calls)
        return []

    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


__all__ = ["FinishReason", "Usage", "Generation", "ChatResponse"]

"""Pydantic models for the OpenAI-compatible chat completion wire format.

Used for both full responses (``choices[].message``) and stream frames
(``choices[].delta``). Unknown fields are ignored so vendor extensions pass.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chatflow.types.responses import Usage


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WireFunction(_Wire):
    name: Optional[str] = None
    arguments: Optional[str] = None


class WireToolCall(_Wire):
    index: Optional[int] = None
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[WireFunction] = None


class WireMessage(_Wire):
    role: Optional[str] = None
    content: Optional[Union[str, List[Dict[str, Any]]]] = None
    reasoning_content: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("reasoning_content", "reasoning")
    )
    tool_calls: Optional[List[WireToolCall]] = None
    name: Optional[str] = None
    tool_call_id: Optional[str] = None

    def text(self) -> str:
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(
            str(part.get("text", ""))
            for part in self.content
            if part.get("type", "text") == "text"
        )


class WireChoice(_Wire):
    index: int = 0
    message: Optional[WireMessage] = None
    delta: Optional[WireMessage] = None
    finish_reason: Optional[str] = None


class WireUsage(_Wire):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def to_usage(self) -> Usage:
        prompt = self.prompt_tokens or 0
        completion = self.completion_tokens or 0
        total = self.total_tokens if self.total_tokens is not None else prompt + completion
        return Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)


class WireResponse(_Wire):
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[WireChoice] = Field(
        default_factory=list, validation_alias=AliasChoices("choices", "generations")
    )
    usage: Optional[WireUsage] = None
    error: Optional[Union[str, Dict[str, Any]]] = None  # provider error object

    def error_message(self) -> str:
        if isinstance(self.error, dict):
            return str(self.error.get("message") or self.error)
        return str(self.error)


_FINISH_REASONS = {"stop", "length", "tool_calls", "content_filter"}


def normalize_finish_reason(value: Optional[str]) -> Optional[str]:
    """Map a wire finish_reason onto the supported set; unknown values become None."""
    if value is None:
        return None
    if value == "function_call":
        return "tool_calls"
    return value if value in _FINISH_REASONS else None


__all__ = [
    "WireFunction",
    "WireToolCall",
    "WireMessage",
    "WireChoice",
    "WireUsage",
    "WireResponse",
    "normalize_finish_reason",
]

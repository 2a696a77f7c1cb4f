from __future__ import annotations

from typing import Any, Callable, Dict, Literal

from pydantic import BaseModel, Field


StreamEventType = Literal[
    "message_start",
    "reasoning",
    "token",
    "tool_calls",
    "tool_start",
    "tool_end",
    "message_end",
    "error",
]


class StreamEvent(BaseModel):
    """Single streaming event emitted during a chat run."""

    event_type: StreamEventType
    data: Dict[str, Any] = Field(default_factory=dict)
    sequence: int
    run_id: str


# The one consumer contract for incremental output. Called from the transport thread.
StreamConsumer = Callable[[StreamEvent], None]


__all__ = ["StreamEventType", "StreamEvent", "StreamConsumer"]

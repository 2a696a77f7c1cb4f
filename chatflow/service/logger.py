"""
Chat call logging helpers.

These functions never raise: a logging failure must never surface to the
caller. Each call writes one INFO record (or ERROR for failures) with the run
id, model, message count, token usage and duration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from chatflow.types.requests import ChatRequest
    from chatflow.types.responses import ChatResponse
    from chatflow.types.streaming import StreamEvent

logger = logging.getLogger(__name__)


def _summary(request: "ChatRequest") -> dict:
    return {
        "run_id": request.run_id,
        "model": request.options.model or "",
        "messages": len(request.messages),
    }


def log_call(request: "ChatRequest", response: "ChatResponse", duration_ms: int) -> None:
    """Log a successful non-streaming call."""
    try:
        usage = response.usage
        logger.info(
            "chat call ok run_id=%(run_id)s model=%(model)s messages=%(messages)d "
            "input_tokens=%(input)d output_tokens=%(output)d total_tokens=%(total)d "
            "duration_ms=%(duration)d",
            {
                **_summary(request),
                "input": usage.prompt_tokens,
                "output": usage.completion_tokens,
                "total": usage.total_tokens,
                "duration": duration_ms,
            },
        )
    except Exception:
        logger.exception("Failed to write chat call log (non-streaming)")


def log_stream(
    request: "ChatRequest",
    response: "ChatResponse",
    events: "List[StreamEvent]",
    duration_ms: int,
) -> None:
    """Log a completed streaming call, including how many events were delivered."""
    try:
        usage = response.usage
        tool_rounds = sum(1 for e in events if e.event_type == "tool_calls")
        logger.info(
            "chat stream ok run_id=%(run_id)s model=%(model)s messages=%(messages)d "
            "events=%(events)d tool_rounds=%(tool_rounds)d total_tokens=%(total)d "
            "duration_ms=%(duration)d",
            {
                **_summary(request),
                "events": len(events),
                "tool_rounds": tool_rounds,
                "total": usage.total_tokens,
                "duration": duration_ms,
            },
        )
    except Exception:
        logger.exception("Failed to write chat call log (streaming)")


def log_error(
    request: "ChatRequest",
    exc: BaseException,
    duration_ms: int,
    *,
    is_stream: bool = False,
) -> None:
    """Log a failed call."""
    try:
        logger.error(
            "chat %(kind)s failed run_id=%(run_id)s model=%(model)s "
            "error_type=%(error_type)s error=%(error)s duration_ms=%(duration)d",
            {
                **_summary(request),
                "kind": "stream" if is_stream else "call",
                "error_type": type(exc).__name__,
                "error": str(exc),
                "duration": duration_ms,
            },
        )
    except Exception:
        logger.exception("Failed to write chat error log")


__all__ = ["log_call", "log_stream", "log_error"]

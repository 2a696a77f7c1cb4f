from __future__ import annotations

import logging

from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse

from .base import BaseStage
from .chain import StageChain

logger = logging.getLogger(__name__)


class LoggingStage(BaseStage):
    """Logs a one-line summary of each request and response at DEBUG."""

    name = "logging"

    def __init__(self, order: int = 0, level: int = logging.DEBUG) -> None:
        self.order = order
        self.level = level

    def before(self, request: ChatRequest, chain: StageChain) -> ChatRequest:
        logger.log(
            self.level,
            "chat request run_id=%s model=%s messages=%d tools=%d",
            request.run_id,
            request.options.model,
            len(request.messages),
            len(request.tool_callbacks),
        )
        return request

    def after(self, response: ChatResponse, chain: StageChain) -> ChatResponse:
        result = response.result
        logger.log(
            self.level,
            "chat response model=%s finish_reason=%s tokens=%d chars=%d",
            response.model,
            result.finish_reason if result else None,
            response.usage.total_tokens,
            len(response.content),
        )
        return response


__all__ = ["LoggingStage"]

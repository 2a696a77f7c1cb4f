"""
Ordered chain of stages.

Stages are sorted by ``order`` (stable, so equal orders keep insertion order)
with terminal stages moved behind everything else. Each ``call_next`` /
``stream_next`` hands the request to the next stage that supports that kind of
call and gives it a view of the chain positioned just after itself. Views are
immutable, so a stage may delegate more than once (e.g. to retry).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple, Type

from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse
from chatflow.types.streaming import StreamConsumer

from .base import CallStage, Stage, StreamStage

logger = logging.getLogger(__name__)


class StageChain:
    def __init__(
        self,
        stages: Iterable[Stage],
        consumer: Optional[StreamConsumer] = None,
    ) -> None:
        self._stages: Tuple[Stage, ...] = tuple(
            sorted(stages, key=lambda s: (s.terminal, s.order))
        )
        self._position = 0
        self.consumer = consumer

    @property
    def stages(self) -> Sequence[Stage]:
        return self._stages

    def _at(self, position: int) -> "StageChain":
        view = object.__new__(StageChain)
        view._stages = self._stages
        view._position = position
        view.consumer = self.consumer
        return view

    def _next(self, kind: Type[Stage]) -> Tuple[Optional[Stage], int]:
        for position in range(self._position, len(self._stages)):
            if isinstance(self._stages[position], kind):
                return self._stages[position], position
        return None, len(self._stages)

    def call_next(self, request: ChatRequest) -> ChatResponse:
        stage, position = self._next(CallStage)
        if stage is None:
            logger.warning("Stage chain has no terminal call stage; returning empty response")
            return ChatResponse.empty()
        return stage.advise_call(request, self._at(position + 1))

    def stream_next(self, request: ChatRequest) -> ChatResponse:
        stage, position = self._next(StreamStage)
        if stage is None:
            logger.warning("Stage chain has no terminal stream stage; returning empty response")
            return ChatResponse.empty()
        return stage.advise_stream(request, self._at(position + 1))


__all__ = ["StageChain"]

"""Base stage interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse

if TYPE_CHECKING:
    from .chain import StageChain


class Stage:
    """Named, ordered element of a StageChain. Lower ``order`` runs first."""

    name: str = ""
    order: int = 0
    terminal: bool = False  # terminal stages answer instead of delegating

    def get_name(self) -> str:
        return self.name or type(self).__name__


class CallStage(Stage, ABC):
    """Stage that takes part in non-streaming calls."""

    @abstractmethod
    def advise_call(self, request: ChatRequest, chain: "StageChain") -> ChatResponse:
        ...


class StreamStage(Stage, ABC):
    """Stage that takes part in streaming calls.

    Increments go to ``chain.consumer``; the return value is the assembled
    final response.
    """

    @abstractmethod
    def advise_stream(self, request: ChatRequest, chain: "StageChain") -> ChatResponse:
        ...


class BaseStage(CallStage, StreamStage):
    """Stage expressed as a ``before`` hook on the way down and an ``after`` hook on the way up.

    Override either hook; both default to passing the value through.
    """

    def before(self, request: ChatRequest, chain: "StageChain") -> ChatRequest:
        return request

    def after(self, response: ChatResponse, chain: "StageChain") -> ChatResponse:
        return response

    def advise_call(self, request: ChatRequest, chain: "StageChain") -> ChatResponse:
        request = self.before(request, chain)
        response = chain.call_next(request)
        return self.after(response, chain)

    def advise_stream(self, request: ChatRequest, chain: "StageChain") -> ChatResponse:
        request = self.before(request, chain)
        response = chain.stream_next(request)
        return self.after(response, chain)


__all__ = ["Stage", "CallStage", "StreamStage", "BaseStage"]

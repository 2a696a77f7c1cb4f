"""Terminal stages: invoke the ChatModel inside the tool-calling loop."""

from __future__ import annotations

import sys

from chatflow.core.interfaces import ChatModel
from chatflow.streaming.assembler import StreamAssembler
from chatflow.tools.loop import DEFAULT_MAX_ITERATIONS, ToolCallingLoop
from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse

from .base import CallStage, StreamStage
from .chain import StageChain


class ModelCallStage(CallStage):
    name = "model_call"
    order = sys.maxsize
    terminal = True

    def __init__(self, model: ChatModel, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        self.model = model
        self.loop = ToolCallingLoop(max_iterations)

    def advise_call(self, request: ChatRequest, chain: StageChain) -> ChatResponse:
        return self.loop.run(request, self.model.call)


class ModelStreamStage(StreamStage):
    """Streams every model round through one assembler shared by the whole call."""

    name = "model_stream"
    order = sys.maxsize
    terminal = True

    def __init__(self, model: ChatModel, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        self.model = model
        self.loop = ToolCallingLoop(max_iterations)

    def advise_stream(self, request: ChatRequest, chain: StageChain) -> ChatResponse:
        assembler = StreamAssembler(chain.consumer, run_id=request.run_id)
        return self.loop.run(
            request,
            lambda req: self.model.stream(req, assembler),
            on_event=assembler.emit,
        )


__all__ = ["ModelCallStage", "ModelStreamStage"]

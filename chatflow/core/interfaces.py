"""
Model interface used by the terminal stages.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse

if TYPE_CHECKING:
    from chatflow.streaming.assembler import StreamAssembler


@runtime_checkable
class ChatModel(Protocol):
    """A chat model that can answer a request in one shot or as a stream."""

    def call(self, request: ChatRequest) -> ChatResponse:
        """Return the complete response for one model invocation."""
        ...

    def stream(self, request: ChatRequest, assembler: "StreamAssembler") -> ChatResponse:
        """
        Stream one model invocation through ``assembler`` and return the
        assembled response once the round has completed.
        """
        ...

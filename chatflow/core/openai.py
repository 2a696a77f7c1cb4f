"""
ChatModel for OpenAI-compatible chat completion endpoints.
"""
from __future__ import annotations

import logging
from typing import Optional

from chatflow.service.errors import TransportError
from chatflow.streaming.assembler import StreamAssembler
from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse

from .codec import build_payload, decode_response
from .transport import ChatTransport

logger = logging.getLogger(__name__)


class OpenAICompatibleChatModel:
    """Sends requests through a ChatTransport and decodes the OpenAI wire format."""

    def __init__(
        self,
        transport: ChatTransport,
        default_model: Optional[str] = None,
        stream_timeout: Optional[float] = None,
    ) -> None:
        self.transport = transport
        self.default_model = default_model
        self.stream_timeout = stream_timeout

    def call(self, request: ChatRequest) -> ChatResponse:
        payload = build_payload(request, stream=False, default_model=self.default_model)
        logger.debug("Chat completion request model=%s messages=%d", payload.get("model"), len(payload["messages"]))
        return decode_response(self.transport.post(payload))

    def stream(self, request: ChatRequest, assembler: StreamAssembler) -> ChatResponse:
        payload = build_payload(request, stream=True, default_model=self.default_model)
        listener = assembler.open_round()
        self.transport.stream(payload, listener)
        if not assembler.await_completion(self.stream_timeout):
            raise TransportError(
                f"Stream did not complete within {self.stream_timeout} seconds"
            )
        assembler.raise_for_error()
        return assembler.build_response()


__all__ = ["OpenAICompatibleChatModel"]

"""
Transports deliver chat payloads to an OpenAI-compatible endpoint.

``post`` is a blocking request/response call. ``stream`` returns immediately
and reports server-sent event payloads to a listener from a transport-owned
thread, ending with exactly one of ``on_closed`` or ``on_failure``.

Swap HttpxTransport for LiteLLMTransport (or anything with the same two
methods) without changing the model or the assembler.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from chatflow.conf import EndpointConfig, get_transport_backend
from chatflow.service.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class StreamListener(Protocol):
    def on_event(self, data: str) -> None: ...

    def on_closed(self) -> None: ...

    def on_failure(self, error: BaseException) -> None: ...


@runtime_checkable
class ChatTransport(Protocol):
    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming request and return the decoded JSON body."""
        ...

    def stream(self, payload: Dict[str, Any], listener: StreamListener) -> Any:
        """Start a streaming request; events go to ``listener`` on another thread."""
        ...


class SSEDecoder:
    """Incremental decoder for ``text/event-stream`` lines; yields data payloads."""

    def __init__(self) -> None:
        self._data: List[str] = []

    def feed(self, line: str) -> List[str]:
        line = line.rstrip("\r")
        if not line:
            return self.flush()
        if line.startswith(":"):  # comment / heartbeat
            return []
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            self._data.append(value)
        return []

    def flush(self) -> List[str]:
        data = "\n".join(self._data)
        self._data = []
        # an empty data buffer does not dispatch
        return [data] if data else []


class HttpxTransport:
    """OpenAI-compatible chat completions over httpx, with SSE streaming."""

    def __init__(self, config: EndpointConfig, client: Optional[httpx.Client] = None) -> None:
        self.config = config
        self._client = client or httpx.Client(timeout=config.timeout)

    def _headers(self, stream: bool = False) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if stream:
            headers["Accept"] = "text/event-stream"
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = self.config.chat_completions_url
        try:
            response = self._client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(
                f"Chat completion failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                "Chat completion response is not JSON",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def stream(self, payload: Dict[str, Any], listener: StreamListener) -> threading.Thread:
        thread = threading.Thread(
            target=self._run_stream,
            args=(payload, listener),
            name="chatflow-sse",
            daemon=True,
        )
        thread.start()
        return thread

    def _run_stream(self, payload: Dict[str, Any], listener: StreamListener) -> None:
        url = self.config.chat_completions_url
        try:
            with self._client.stream(
                "POST", url, json=payload, headers=self._headers(stream=True)
            ) as response:
                if response.status_code >= 400:
                    body = response.read().decode("utf-8", errors="replace")
                    listener.on_failure(TransportError(
                        f"Chat completion stream failed with status {response.status_code}",
                        status_code=response.status_code,
                        body=body,
                    ))
                    return
                decoder = SSEDecoder()
                for line in response.iter_lines():
                    for data in decoder.feed(line):
                        listener.on_event(data)
                for data in decoder.flush():
                    listener.on_event(data)
        except httpx.HTTPError as exc:
            listener.on_failure(TransportError(f"Stream to {url} failed: {exc}"))
            return
        except Exception as exc:
            logger.exception("Unexpected error while reading stream from %s", url)
            listener.on_failure(exc)
            return
        listener.on_closed()

    def close(self) -> None:
        self._client.close()


def _to_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    return obj.model_dump()


class LiteLLMTransport:
    """Transport that delegates to litellm.completion; stream chunks are re-emitted as JSON frames."""

    def __init__(self, config: Optional[EndpointConfig] = None) -> None:
        self.config = config

    def _completion_kwargs(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        kwargs = dict(payload)
        if self.config is not None:
            kwargs.setdefault("timeout", self.config.timeout)
            kwargs.setdefault("api_base", self.config.api_base)
            if self.config.api_key:
                kwargs.setdefault("api_key", self.config.api_key)
        return kwargs

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        import litellm
        try:
            response = litellm.completion(**self._completion_kwargs(payload))
        except Exception as exc:
            raise TransportError(f"litellm completion failed: {exc}") from exc
        return _to_dict(response)

    def stream(self, payload: Dict[str, Any], listener: StreamListener) -> threading.Thread:
        thread = threading.Thread(
            target=self._run_stream,
            args=(payload, listener),
            name="chatflow-litellm-stream",
            daemon=True,
        )
        thread.start()
        return thread

    def _run_stream(self, payload: Dict[str, Any], listener: StreamListener) -> None:
        import litellm
        try:
            for chunk in litellm.completion(**self._completion_kwargs(payload)):
                listener.on_event(json.dumps(_to_dict(chunk), default=str))
        except Exception as exc:
            listener.on_failure(TransportError(f"litellm stream failed: {exc}"))
            return
        listener.on_event("[DONE]")
        listener.on_closed()


def create_transport(
    config: Optional[EndpointConfig] = None,
    backend: Optional[str] = None,
) -> ChatTransport:
    """Build the transport named by CHATFLOW_TRANSPORT (or ``backend``)."""
    config = config or EndpointConfig.from_settings()
    backend = backend or get_transport_backend()
    if backend == "httpx":
        return HttpxTransport(config)
    if backend == "litellm":
        return LiteLLMTransport(config)
    raise ConfigurationError(
        f"Unknown CHATFLOW_TRANSPORT={backend!r}. Available: ['httpx', 'litellm']"
    )


__all__ = [
    "StreamListener",
    "ChatTransport",
    "SSEDecoder",
    "HttpxTransport",
    "LiteLLMTransport",
    "create_transport",
]

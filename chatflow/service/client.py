"""
ChatClient: facade for calling and streaming chat models through the stage chain.

Use from other apps (Django views, management commands, background workers):

    from chatflow.service.client import create_chat_client
    from chatflow.tools import AddNumberTool
    from chatflow.types import ChatRequest, Message

    client = create_chat_client(tools=[AddNumberTool()])
    request = ChatRequest(messages=[Message.user("What is 2 + 3?")])
    response = client.call(request)
    print(response.content)

For streaming:

    for event in client.stream(request):
        # send event.model_dump_json() to the browser
        ...

The last streamed event is a ``message_end`` whose data carries the final
response under ``"response"``.
"""

from __future__ import annotations

import asyncio
import queue
import threading
import time
import uuid
from typing import AsyncIterator, Callable, Iterable, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel

from chatflow.conf import get_default_model, get_max_concurrent_streams, get_max_tool_iterations, resolve_model
from chatflow.core.interfaces import ChatModel
from chatflow.service.errors import ChatFlowError, ConfigurationError, ModelProviderError
from chatflow.service.logger import log_call, log_error, log_stream
from chatflow.service.structured import EntityOutputConverter
from chatflow.stages.base import Stage
from chatflow.stages.chain import StageChain
from chatflow.stages.model import ModelCallStage, ModelStreamStage
from chatflow.tools.interfaces import ToolCallback
from chatflow.tools.registry import ToolRegistry
from chatflow.types.messages import Message
from chatflow.types.options import ChatOptions
from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse
from chatflow.types.streaming import StreamConsumer, StreamEvent

T = TypeVar("T", bound=BaseModel)


class ChatClient:
    """Facade that prepares requests, runs the stage chain, and normalizes errors.

    Default tools are registered once here; duplicate names fail at
    construction. Per-request tools are merged with them on every call.
    """

    def __init__(
        self,
        model: ChatModel,
        stages: Iterable[Stage] = (),
        tools: Iterable[ToolCallback] = (),
        options: Optional[ChatOptions] = None,
        max_tool_iterations: Optional[int] = None,
        resolve_model_fn: Optional[Callable[[Optional[str]], str]] = None,
    ) -> None:
        if model is None:
            raise ConfigurationError("ChatClient requires a ChatModel")
        self.model = model
        self.stages: List[Stage] = list(stages)
        self.registry = ToolRegistry(tools)
        self.options = options or ChatOptions()
        if max_tool_iterations is None:
            max_tool_iterations = get_max_tool_iterations()
        if max_tool_iterations < 1:
            raise ConfigurationError(f"max_tool_iterations must be at least 1, got {max_tool_iterations}")
        self.max_tool_iterations = max_tool_iterations
        self._resolve_model_fn = resolve_model_fn
        self._stream_semaphore: Optional[asyncio.Semaphore] = None

    # -- private helpers ----------------------------------------------------

    def _resolve_model(self, model: Optional[str]) -> str:
        fn = self._resolve_model_fn or resolve_model
        return fn(model)

    def _prepare(self, request: ChatRequest) -> ChatRequest:
        """Fill run_id, resolve the model, and merge default options and tools."""
        request.context.setdefault("run_id", uuid.uuid4().hex)
        options = self.options.merge(request.options)
        options = options.model_copy(update={"model": self._resolve_model(options.model)})
        callbacks = self.registry.merged_with(request.tool_callbacks).callbacks()
        return request.model_copy(update={"options": options, "tool_callbacks": callbacks})

    def _build_chain(self, consumer: Optional[StreamConsumer] = None) -> StageChain:
        return StageChain(
            [
                *self.stages,
                ModelCallStage(self.model, self.max_tool_iterations),
                ModelStreamStage(self.model, self.max_tool_iterations),
            ],
            consumer=consumer,
        )

    # -- sync API -----------------------------------------------------------

    def call(self, request: ChatRequest) -> ChatResponse:
        """Run a non-streaming call through the stage chain."""
        req = self._prepare(request)
        t0 = time.monotonic()
        try:
            response = self._build_chain().call_next(req)
        except ChatFlowError as exc:
            log_error(req, exc, int((time.monotonic() - t0) * 1000))
            raise
        except Exception as exc:
            log_error(req, exc, int((time.monotonic() - t0) * 1000))
            raise ModelProviderError("Chat call failed") from exc
        log_call(req, response, int((time.monotonic() - t0) * 1000))
        return response

    def call_entity(self, request: ChatRequest, entity_cls: Type[T]) -> T:
        """Run a call that must answer with JSON for ``entity_cls`` and return the parsed entity.

        Format instructions derived from the model's JSON schema are appended as a
        system message. Raises OutputParseError if the answer does not validate.
        """
        converter = EntityOutputConverter(entity_cls)
        req = request.model_copy(update={
            "messages": [*request.messages, Message.system(converter.format_instructions())],
        })
        return converter.convert(self.call(req).content)

    def stream_to(self, request: ChatRequest, consumer: StreamConsumer) -> ChatResponse:
        """Stream a call, delivering every event to ``consumer``; returns the final response."""
        return self._stream_prepared(self._prepare(request), consumer)

    def _stream_prepared(self, req: ChatRequest, consumer: StreamConsumer) -> ChatResponse:
        events: List[StreamEvent] = []

        def _record(event: StreamEvent) -> None:
            events.append(event)
            consumer(event)

        t0 = time.monotonic()
        try:
            response = self._build_chain(_record).stream_next(req)
        except ChatFlowError as exc:
            log_error(req, exc, int((time.monotonic() - t0) * 1000), is_stream=True)
            raise
        except Exception as exc:
            log_error(req, exc, int((time.monotonic() - t0) * 1000), is_stream=True)
            raise ModelProviderError("Chat stream failed") from exc
        log_stream(req, response, events, int((time.monotonic() - t0) * 1000))
        return response

    _STREAM_SENTINEL = None  # sentinel to signal end of stream

    def stream(self, request: ChatRequest) -> Iterator[StreamEvent]:
        """Stream events as an iterator.

        A background thread runs the chain and pushes events into a queue. The
        final event is ``message_end`` with ``data["response"]`` holding the
        assembled response. Errors are re-raised from the iterator.
        """
        req = self._prepare(request)
        q: "queue.Queue[StreamEvent | BaseException | None]" = queue.Queue()
        last_sequence = [0]

        def _consume(event: StreamEvent) -> None:
            last_sequence[0] = event.sequence
            q.put(event)

        def _produce() -> None:
            try:
                response = self._stream_prepared(req, _consume)
                q.put(StreamEvent(
                    event_type="message_end",
                    data={"response": response.model_dump(mode="json")},
                    sequence=last_sequence[0] + 1,
                    run_id=req.run_id,
                ))
            except BaseException as exc:
                q.put(exc)
            else:
                q.put(self._STREAM_SENTINEL)

        thread = threading.Thread(target=_produce, name="chatflow-stream", daemon=True)
        thread.start()

        while True:
            item = q.get()
            if item is self._STREAM_SENTINEL:
                break
            if isinstance(item, BaseException):
                raise item
            yield item

    # -- async bridge -------------------------------------------------------

    async def acall(self, request: ChatRequest) -> ChatResponse:
        """Async wrapper around ``call()``. Executes the blocking call in a thread."""
        return await asyncio.to_thread(self.call, request)

    async def acall_entity(self, request: ChatRequest, entity_cls: Type[T]) -> T:
        """Async wrapper around ``call_entity()``."""
        return await asyncio.to_thread(self.call_entity, request, entity_cls)

    async def astream(self, request: ChatRequest) -> AsyncIterator[StreamEvent]:
        """Async wrapper around ``stream()`` with token-level streaming.

        Concurrent streams are capped by ``CHATFLOW_MAX_CONCURRENT_STREAMS``.
        """
        sem = self._get_stream_semaphore()
        async with sem:
            loop = asyncio.get_running_loop()
            q: "asyncio.Queue[StreamEvent | BaseException | None]" = asyncio.Queue()

            def _produce() -> None:
                try:
                    for event in self.stream(request):
                        loop.call_soon_threadsafe(q.put_nowait, event)
                except BaseException as exc:
                    loop.call_soon_threadsafe(q.put_nowait, exc)
                else:
                    loop.call_soon_threadsafe(q.put_nowait, self._STREAM_SENTINEL)

            thread = threading.Thread(target=_produce, daemon=True)
            thread.start()

            while True:
                item = await q.get()
                if item is self._STREAM_SENTINEL:
                    break
                if isinstance(item, BaseException):
                    raise item
                yield item

    def _get_stream_semaphore(self) -> asyncio.Semaphore:
        """Lazy-init the semaphore inside a running event loop."""
        if self._stream_semaphore is None:
            self._stream_semaphore = asyncio.Semaphore(get_max_concurrent_streams())
        return self._stream_semaphore


def create_chat_client(
    stages: Iterable[Stage] = (),
    tools: Iterable[ToolCallback] = (),
    options: Optional[ChatOptions] = None,
) -> ChatClient:
    """Build a ChatClient for the endpoint and transport configured in settings."""
    from chatflow.core.openai import OpenAICompatibleChatModel
    from chatflow.core.transport import create_transport

    model = OpenAICompatibleChatModel(create_transport(), default_model=get_default_model())
    return ChatClient(model, stages=stages, tools=tools, options=options)


__all__ = ["ChatClient", "create_chat_client"]

"""
Streaming assembler: turns server-sent event payloads into increments and a final message.

One assembler serves a whole logical call. Each model round calls
``open_round()`` to get a listener for the transport, then blocks in
``await_completion()`` until ``[DONE]``, stream close, or a failure releases it.
The barrier then advances its generation, so late events from a finished round
are dropped instead of leaking into the next one.

Answer text and reasoning text are accumulated separately. Tool-call fragments
are concatenated per ``index`` and only surfaced once the round reaches a
terminal frame.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from chatflow.core.wire import WireMessage, WireResponse, WireToolCall, normalize_finish_reason
from chatflow.service.errors import ChatFlowError, ModelProviderError, StreamParseError, TransportError
from chatflow.types.messages import Message, ToolCall
from chatflow.types.responses import ChatResponse, Generation, Usage
from chatflow.types.streaming import StreamConsumer, StreamEvent

from .barrier import CompletionBarrier

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class AssemblerState(str, Enum):
    IDLE = "idle"
    ANSWERING = "answering"
    REASONING = "reasoning"
    FINALIZING = "finalizing"


@dataclass
class _PendingToolCall:
    id: str = ""
    function_name: str = ""
    arguments: List[str] = field(default_factory=list)

    def complete(self) -> ToolCall:
        return ToolCall(
            id=self.id,
            function_name=self.function_name,
            arguments_json="".join(self.arguments),
        )


class RoundListener:
    """Transport-facing callbacks bound to one round of one assembler."""

    def __init__(self, assembler: "StreamAssembler", generation: int) -> None:
        self._assembler = assembler
        self.generation = generation

    def on_event(self, data: str) -> None:
        self._assembler._handle_event(self.generation, data)

    def on_closed(self) -> None:
        self._assembler._handle_closed(self.generation)

    def on_failure(self, error: BaseException) -> None:
        self._assembler._handle_failure(self.generation, error)


class StreamAssembler:
    """State machine rebuilding one assistant message per round from stream frames."""

    def __init__(
        self,
        consumer: Optional[StreamConsumer] = None,
        run_id: str = "",
    ) -> None:
        self._consumer = consumer
        self.run_id = run_id
        self._barrier = CompletionBarrier()
        self._lock = threading.RLock()
        self._sequence = 0
        self._round = 0
        self._reset_round()

    # -- round lifecycle ----------------------------------------------------

    def _reset_round(self) -> None:
        self.state = AssemblerState.IDLE
        self._output: List[str] = []
        self._reasoning: List[str] = []
        self._current = ""
        self._usage = Usage()
        self._usage_seen = False
        self._finish_reason: Optional[str] = None
        self._pending: Dict[int, _PendingToolCall] = {}
        self._tool_calls: List[ToolCall] = []
        self._error: Optional[ChatFlowError] = None
        self._model: Optional[str] = None
        self._finished = False

    def open_round(self) -> RoundListener:
        """Reset per-round state and return the listener to hand to the transport."""
        with self._lock:
            self._reset_round()
            self._round += 1
            listener = RoundListener(self, self._barrier.generation)
            self._emit("message_start", {"round": self._round})
            return listener

    def await_completion(self, timeout: Optional[float] = None) -> bool:
        """Block until the current round is released. Consumes the signal."""
        return self._barrier.wait(timeout)

    # -- observable state ---------------------------------------------------

    @property
    def output(self) -> str:
        with self._lock:
            return "".join(self._output)

    @property
    def reasoning_output(self) -> str:
        with self._lock:
            return "".join(self._reasoning)

    @property
    def current(self) -> str:
        """Text of the most recent increment."""
        return self._current

    @property
    def is_reasoning(self) -> bool:
        return self.state is AssemblerState.REASONING

    @property
    def usage(self) -> Usage:
        return self._usage

    @property
    def finish_reason(self) -> Optional[str]:
        return self._finish_reason

    @property
    def tool_calls(self) -> List[ToolCall]:
        """Completed tool calls of this round; empty until a terminal frame."""
        with self._lock:
            return list(self._tool_calls)

    @property
    def error(self) -> Optional[ChatFlowError]:
        return self._error

    def raise_for_error(self) -> None:
        if self._error is not None:
            raise self._error

    def build_response(self) -> ChatResponse:
        """Assemble the round's final message as a ChatResponse."""
        with self._lock:
            finish = self._finish_reason
            if finish is None and self._tool_calls:
                finish = "tool_calls"
            message = Message(
                role="assistant",
                content="".join(self._output),
                reasoning_content="".join(self._reasoning) or None,
                tool_calls=list(self._tool_calls) or None,
            )
            return ChatResponse(
                generations=[Generation(index=0, message=message, finish_reason=finish)],
                usage=self._usage,
                model=self._model,
            )

    def emit(self, event_type: str, data: Dict[str, Any]) -> None:
        """Publish an out-of-band event (e.g. tool execution) in sequence order."""
        with self._lock:
            self._emit(event_type, data)

    # -- transport callbacks ------------------------------------------------

    def _accepts(self, generation: int) -> bool:
        if generation != self._barrier.generation or self._finished:
            logger.debug("Dropping stream event for finished round (run_id=%s)", self.run_id)
            return False
        return True

    def _handle_event(self, generation: int, data: str) -> None:
        with self._lock:
            if not self._accepts(generation):
                return
            payload = data.strip()
            if payload.upper() == DONE_SENTINEL:
                self._finish()
                return
            try:
                frame = WireResponse.model_validate_json(payload)
            except ValidationError as exc:
                self._fail(StreamParseError(f"Malformed stream frame: {exc}", body=data))
                return
            self._apply_frame(frame)

    def _handle_closed(self, generation: int) -> None:
        with self._lock:
            if not self._accepts(generation):
                return
            self._finish()

    def _handle_failure(self, generation: int, error: BaseException) -> None:
        with self._lock:
            if not self._accepts(generation):
                return
            if isinstance(error, ChatFlowError):
                self._fail(error)
            else:
                wrapped = TransportError(f"Stream transport failure: {error}")
                wrapped.__cause__ = error
                self._fail(wrapped)

    # -- frame handling -----------------------------------------------------

    def _apply_frame(self, frame: WireResponse) -> None:
        if frame.error is not None:
            self._fail(TransportError(
                f"Provider error in stream: {frame.error_message()}",
                body=json.dumps(frame.error) if isinstance(frame.error, dict) else frame.error,
            ))
            return
        if frame.model:
            self._model = frame.model
        if frame.usage is not None:
            self._usage = self._usage + frame.usage.to_usage()
            self._usage_seen = True

        if not frame.choices:
            if frame.usage is not None:
                # Trailing accounting-only frame.
                self._current = ""
                self._emit("token", {"text": "", "usage": self._usage.model_dump()})
            return

        choice = frame.choices[0]
        delta = choice.delta or choice.message or WireMessage()
        text = delta.text()
        reasoning = delta.reasoning_content or ""
        fragments = delta.tool_calls or []
        finish = normalize_finish_reason(choice.finish_reason)

        if self.state is AssemblerState.FINALIZING:
            if text or reasoning or fragments:
                logger.debug("Ignoring content after terminal frame (run_id=%s)", self.run_id)
            return

        if fragments:
            self._merge_fragments(fragments)

        if finish is not None and finish != "tool_calls":
            self._finish_reason = finish
            if reasoning:
                self._reasoning.append(reasoning)
                self._emit("reasoning", {"text": reasoning})
            if text:
                self._output.append(text)
            self._current = text
            if self._pending:
                self._complete_tool_calls()
            self.state = AssemblerState.FINALIZING
            self._emit("token", {"text": text, "finish_reason": finish})
            return

        if finish == "tool_calls":
            self._finish_reason = finish
            if text:
                self._route_answer(text)
            self._complete_tool_calls()
            self.state = AssemblerState.FINALIZING
            return

        if not text and not reasoning and not fragments:
            if self._usage_seen:
                self._current = ""
                self._emit("token", {"text": ""})
            # Otherwise a keep-alive: nothing to record.
            return

        if reasoning:
            self.state = AssemblerState.REASONING
            self._reasoning.append(reasoning)
            self._current = reasoning
            self._emit("reasoning", {"text": reasoning})
        if text:
            self._route_answer(text)

    def _route_answer(self, text: str) -> None:
        self.state = AssemblerState.ANSWERING
        self._output.append(text)
        self._current = text
        self._emit("token", {"text": text})

    def _merge_fragments(self, fragments: List[WireToolCall]) -> None:
        for position, fragment in enumerate(fragments):
            index = fragment.index if fragment.index is not None else position
            pending = self._pending.get(index)
            if pending is None:
                pending = self._pending[index] = _PendingToolCall()
            if fragment.id:
                pending.id = fragment.id
            function = fragment.function
            if function is not None:
                if function.name:
                    pending.function_name = function.name
                if function.arguments:
                    pending.arguments.append(function.arguments)

    def _complete_tool_calls(self) -> None:
        if not self._pending:
            return
        self._tool_calls = [self._pending[i].complete() for i in sorted(self._pending)]
        self._pending = {}
        self._emit("tool_calls", {"tool_calls": [tc.model_dump() for tc in self._tool_calls]})

    # -- terminal transitions -----------------------------------------------

    def _finish(self) -> None:
        self._complete_tool_calls()
        self.state = AssemblerState.FINALIZING
        self._current = ""
        self._emit("message_end", {
            "finish_reason": self._finish_reason or ("tool_calls" if self._tool_calls else None),
            "usage": self._usage.model_dump(),
        })
        self._finished = True
        self._barrier.release()

    def _fail(self, error: ChatFlowError) -> None:
        logger.error("Stream round failed (run_id=%s): %s", self.run_id, error)
        self._error = error
        self._finished = True
        self._emit("error", {"message": type(error).__name__, "details": str(error)})
        self._barrier.release()

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        self._sequence += 1
        if self._consumer is None:
            return
        event = StreamEvent(
            event_type=event_type,
            data=data,
            sequence=self._sequence,
            run_id=self.run_id,
        )
        try:
            self._consumer(event)
        except Exception as exc:
            logger.exception("Stream consumer raised on %s event", event_type)
            if self._error is None:
                error = ModelProviderError(f"Stream consumer failed: {exc}")
                error.__cause__ = exc
                self._error = error
                self._finished = True
                self._barrier.release()


__all__ = ["DONE_SENTINEL", "AssemblerState", "RoundListener", "StreamAssembler"]

"""Bounded tool-calling loop shared by the sync and streaming model stages."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from chatflow.service.errors import ToolNotFoundError
from chatflow.types.messages import Message, ToolCall
from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse, Usage

from .registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 8
TOOL_ERROR_PREFIX = "Tool execution error: "

# Receives ("tool_start" | "tool_end", payload) while a round executes its tools.
ToolEventSink = Callable[[str, Dict[str, Any]], None]


class ToolCallingLoop:
    """Invoke the model, run the tools it asks for, and repeat.

    ``max_iterations`` bounds the number of model invocations. When the bound
    is hit while the model still requests tools, the last response is returned
    unchanged; callers can inspect ``finish_reason == "tool_calls"`` themselves.
    """

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations

    def run(
        self,
        request: ChatRequest,
        invoke: Callable[[ChatRequest], ChatResponse],
        on_event: Optional[ToolEventSink] = None,
    ) -> ChatResponse:
        registry = ToolRegistry(request.tool_callbacks)
        if not len(registry):
            return invoke(request)

        req = request.model_copy(update={"tool_definitions": registry.definitions()})
        total = Usage()
        response = ChatResponse.empty()

        for round_no in range(1, self.max_iterations + 1):
            response = invoke(req)
            total = total + response.usage
            generation = next(
                (g for g in response.generations if g.message.tool_calls), None
            )
            if generation is None:
                break
            if round_no == self.max_iterations:
                logger.info(
                    "Tool loop stopped after %d rounds with pending tool calls (run_id=%s)",
                    round_no,
                    req.run_id,
                )
                break

            tool_calls = list(generation.message.tool_calls or [])
            messages = list(req.messages)
            messages.append(Message.assistant(generation.message.text, tool_calls))
            messages.extend(self.execute_tool_calls(tool_calls, registry, req.context, on_event))
            req = req.model_copy(update={"messages": messages})

        return response.model_copy(update={"usage": total})

    @staticmethod
    def execute_tool_calls(
        tool_calls: List[ToolCall],
        registry: ToolRegistry,
        context: Dict[str, Any],
        on_event: Optional[ToolEventSink] = None,
    ) -> List[Message]:
        """Execute one round of tool calls and return one tool message per call.

        Every name is resolved before anything runs, so an unknown tool fails the
        round without side effects. Callback failures become diagnostic results.
        """
        try:
            resolved = [(tc, registry.resolve(tc.function_name)) for tc in tool_calls]
        except ToolNotFoundError as exc:
            logger.error("Model requested unregistered tool %r", exc.name)
            raise

        results: List[Message] = []
        for tc, callback in resolved:
            arguments = tc.arguments_json if tc.arguments_json.strip() else "{}"
            if on_event:
                on_event("tool_start", {
                    "tool_name": tc.function_name,
                    "tool_call_id": tc.id,
                    "arguments": arguments,
                })
            try:
                result = callback.call(arguments, dict(context))
            except Exception as e:
                logger.warning("Tool %r execution failed", tc.function_name, exc_info=True)
                result = f"{TOOL_ERROR_PREFIX}{e}"
            result_str = "" if result is None else str(result)
            if on_event:
                on_event("tool_end", {
                    "tool_name": tc.function_name,
                    "tool_call_id": tc.id,
                    "result": result_str,
                })
            results.append(Message.tool(tc.id, result_str))
        return results


__all__ = ["DEFAULT_MAX_ITERATIONS", "TOOL_ERROR_PREFIX", "ToolEventSink", "ToolCallingLoop"]

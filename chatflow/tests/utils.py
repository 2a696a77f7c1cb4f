"""Test utilities for the chatflow app: scripted transports and wire frame builders."""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, List, Optional

from chatflow.types.messages import Message, ToolCall
from chatflow.types.responses import ChatResponse, Generation, Usage


def usage_dict(prompt: int, completion: int) -> Dict[str, int]:
    return {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": prompt + completion,
    }


def chunk(
    content: Optional[str] = None,
    reasoning: Optional[str] = None,
    tool_calls: Optional[List[Dict[str, Any]]] = None,
    finish_reason: Optional[str] = None,
    usage: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    """One streaming chat.completion.chunk frame."""
    delta: Dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    if reasoning is not None:
        delta["reasoning_content"] = reasoning
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    frame: Dict[str, Any] = {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    if usage is not None:
        frame["usage"] = usage
    return frame


def usage_frame(prompt: int, completion: int) -> Dict[str, Any]:
    """Trailing frame with usage and no choices (stream_options.include_usage)."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "model": "gpt-4o-mini",
        "choices": [],
        "usage": usage_dict(prompt, completion),
    }


def tool_call_fragment(index: int, id: Optional[str] = None, name: Optional[str] = None, arguments: str = "") -> Dict[str, Any]:
    fragment: Dict[str, Any] = {"index": index, "function": {"arguments": arguments}}
    if id is not None:
        fragment["id"] = id
        fragment["type"] = "function"
    if name is not None:
        fragment["function"]["name"] = name
    return fragment


def completion_body(
    content: Optional[str] = "",
    tool_calls: Optional[List[Dict[str, Any]]] = None,
    finish_reason: str = "stop",
    usage: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    """A non-streaming chat.completion response body."""
    message: Dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    body: Dict[str, Any] = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
    }
    if usage is not None:
        body["usage"] = usage
    return body


def wire_tool_call(id: str, name: str, arguments: str) -> Dict[str, Any]:
    return {"id": id, "type": "function", "function": {"name": name, "arguments": arguments}}


def text_response(text: str, usage: Optional[Usage] = None) -> ChatResponse:
    return ChatResponse(
        generations=[Generation(message=Message.assistant(text), finish_reason="stop")],
        usage=usage or Usage(),
    )


def tool_call_response(*calls: ToolCall, usage: Optional[Usage] = None) -> ChatResponse:
    return ChatResponse(
        generations=[
            Generation(message=Message.assistant("", list(calls)), finish_reason="tool_calls")
        ],
        usage=usage or Usage(),
    )


class ScriptedTransport:
    """ChatTransport that replays canned bodies (post) and frame lists (stream).

    With ``threaded=True`` frames are delivered from a separate thread, like a
    real transport; otherwise they are delivered before ``stream()`` returns.
    """

    def __init__(self, responses=(), streams=(), threaded: bool = False, close: bool = True) -> None:
        self.responses = list(responses)
        self.streams = list(streams)
        self.threaded = threaded
        self.close = close
        self.payloads: List[Dict[str, Any]] = []

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.payloads.append(payload)
        return self.responses.pop(0)

    def stream(self, payload: Dict[str, Any], listener) -> None:
        self.payloads.append(payload)
        frames = self.streams.pop(0)

        def _deliver() -> None:
            for frame in frames:
                if isinstance(frame, BaseException):
                    listener.on_failure(frame)
                    return
                listener.on_event(frame if isinstance(frame, str) else json.dumps(frame))
            if self.close:
                listener.on_closed()

        if self.threaded:
            threading.Thread(target=_deliver, daemon=True).start()
        else:
            _deliver()


class FakeModel:
    """ChatModel returning queued responses and recording every request."""

    def __init__(self, *responses: ChatResponse) -> None:
        self.responses = list(responses)
        self.requests = []

    def call(self, request):
        self.requests.append(request)
        if len(self.responses) == 1:
            return self.responses[0]
        return self.responses.pop(0)

    def stream(self, request, assembler):
        return self.call(request)

"""
Encode ChatRequests into OpenAI-compatible chat completion payloads and decode
the responses back into ChatResponses.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from chatflow.service.errors import ModelProviderError, TransportError
from chatflow.tools.schema import tools_to_openai_schemas
from chatflow.types.messages import ImagePart, Message, TextPart, ToolCall
from chatflow.types.requests import ChatRequest
from chatflow.types.responses import ChatResponse, Generation, Usage

from .wire import WireMessage, WireResponse, normalize_finish_reason

# ChatOptions fields copied verbatim into the payload when set.
_OPTION_FIELDS = (
    "temperature",
    "top_p",
    "max_tokens",
    "stop",
    "presence_penalty",
    "frequency_penalty",
    "seed",
    "tool_choice",
    "parallel_tool_calls",
)


def _encode_part(part) -> Dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    image: Dict[str, Any] = {"url": part.url}
    if part.detail:
        image["detail"] = part.detail
    return {"type": "image_url", "image_url": image}


def encode_message(message: Message) -> Dict[str, Any]:
    """Convert a Message to the wire dict (role, content, tool_calls, tool_call_id)."""
    out: Dict[str, Any] = {"role": message.role}
    if isinstance(message.content, str):
        content: Any = message.content
    else:
        content = [_encode_part(p) for p in message.content]
    if message.tool_calls:
        out["content"] = content or None
        out["tool_calls"] = [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.function_name, "arguments": tc.arguments_json},
            }
            for tc in message.tool_calls
        ]
    else:
        out["content"] = content
    if message.name:
        out["name"] = message.name
    if message.tool_call_id:
        out["tool_call_id"] = message.tool_call_id
    return out


def _attach_media(messages: List[Message], media: List[ImagePart]) -> List[Message]:
    """Append request-level images to the last user message."""
    if not media:
        return messages
    for i in range(len(messages) - 1, -1, -1):
        msg = messages[i]
        if msg.role != "user":
            continue
        parts = [TextPart(text=msg.content)] if isinstance(msg.content, str) else list(msg.content)
        parts.extend(media)
        messages = list(messages)
        messages[i] = msg.model_copy(update={"content": parts})
        return messages
    return list(messages) + [Message(role="user", content=list(media))]


def build_payload(
    request: ChatRequest,
    stream: bool = False,
    default_model: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the JSON body for POST /chat/completions."""
    options = request.options
    payload: Dict[str, Any] = {
        "model": options.model or default_model,
        "messages": [encode_message(m) for m in _attach_media(request.messages, request.media)],
    }
    for name in _OPTION_FIELDS:
        value = getattr(options, name)
        if value is not None:
            payload[name] = value
    if request.tool_definitions:
        payload["tools"] = tools_to_openai_schemas(request.tool_definitions)
    else:
        # tool_choice without tools is rejected by most providers
        payload.pop("tool_choice", None)
        payload.pop("parallel_tool_calls", None)
    if stream:
        payload["stream"] = True
        payload["stream_options"] = {"include_usage": True}
    payload.update(options.extra_body)
    return payload


def decode_message(wire: WireMessage) -> Message:
    tool_calls = [
        ToolCall(
            id=tc.id or "",
            function_name=(tc.function.name if tc.function else None) or "",
            arguments_json=(tc.function.arguments if tc.function else None) or "{}",
        )
        for tc in wire.tool_calls or []
    ]
    return Message(
        role="assistant",
        content=wire.text(),
        reasoning_content=wire.reasoning_content or None,
        tool_calls=tool_calls or None,
    )


def decode_response(body: Dict[str, Any]) -> ChatResponse:
    """Decode a non-streaming chat completion body."""
    try:
        wire = WireResponse.model_validate(body)
    except ValidationError as exc:
        raise ModelProviderError(f"Malformed chat completion response: {exc}") from exc
    if wire.error is not None:
        raise TransportError(
            f"Provider error: {wire.error_message()}",
            body=json.dumps(wire.error) if isinstance(wire.error, dict) else wire.error,
        )

    generations = []
    for choice in wire.choices:
        message = decode_message(choice.message or choice.delta or WireMessage())
        finish = normalize_finish_reason(choice.finish_reason)
        if finish is None and message.tool_calls:
            finish = "tool_calls"
        generations.append(Generation(index=choice.index, message=message, finish_reason=finish))

    return ChatResponse(
        generations=generations,
        usage=wire.usage.to_usage() if wire.usage else Usage(),
        model=wire.model,
        metadata={"id": wire.id} if wire.id else {},
    )


__all__ = ["encode_message", "build_payload", "decode_message", "decode_response"]

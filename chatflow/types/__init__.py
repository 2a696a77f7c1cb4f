from .messages import ContentPart, ImagePart, Message, TextPart, ToolCall
from .options import ChatOptions
from .requests import ChatRequest
from .responses import ChatResponse, FinishReason, Generation, Usage
from .streaming import StreamConsumer, StreamEvent
from .tools import ToolDefinition

__all__ = [
    "ContentPart",
    "ImagePart",
    "Message",
    "TextPart",
    "ToolCall",
    "ChatOptions",
    "ChatRequest",
    "ChatResponse",
    "FinishReason",
    "Generation",
    "Usage",
    "StreamConsumer",
    "StreamEvent",
    "ToolDefinition",
]

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


Role = Literal["system", "user", "assistant", "tool"]


class TextPart(BaseModel):
    """Plain text segment of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image reference (http(s) URL or data URI) of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    url: str
    detail: Optional[str] = None


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str  # correlates call with result
    function_name: str
    arguments_json: str = "{}"  # raw JSON text; validity is the callee's concern


class Message(BaseModel):
    """Generic chat message used across stages and models."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: Union[str, List[ContentPart]] = ""
    name: Optional[str] = None
    reasoning_content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None  # assistant messages requesting tools
    tool_call_id: Optional[str] = None  # tool result messages

    @model_validator(mode="after")
    def _check_tool_fields(self) -> "Message":
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("tool messages must reference a tool_call_id")
        if self.tool_calls and self.role != "assistant":
            raise ValueError("only assistant messages may carry tool_calls")
        return self

    @property
    def text(self) -> str:
        """Text content; multimodal parts are joined, images skipped."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role="system", content=text)

    @classmethod
    def user(cls, text: str, *image_urls: str) -> "Message":
        if not image_urls:
            return cls(role="user", content=text)
        parts: List[ContentPart] = [TextPart(text=text)]
        parts.extend(ImagePart(url=url) for url in image_urls)
        return cls(role="user", content=parts)

    @classmethod
    def assistant(
        cls, text: str = "", tool_calls: Optional[List[ToolCall]] = None
    ) -> "Message":
        return cls(role="assistant", content=text or "", tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, tool_call_id: str, result: str) -> "Message":
        return cls(role="tool", content=result, tool_call_id=tool_call_id)


__all__ = ["Role", "TextPart", "ImagePart", "ContentPart", "ToolCall", "Message"]

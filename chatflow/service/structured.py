"""
Structured output: ask the model for JSON matching a pydantic model and parse it back.
"""

from __future__ import annotations

import json
from typing import Generic, Type, TypeVar

from pydantic import BaseModel, ValidationError

from chatflow.service.errors import OutputParseError

T = TypeVar("T", bound=BaseModel)

_FENCE = "```"


class EntityOutputConverter(Generic[T]):
    """Renders format instructions for ``entity_cls`` and converts answers into it."""

    def __init__(self, entity_cls: Type[T]) -> None:
        self.entity_cls = entity_cls

    def json_schema(self) -> str:
        return json.dumps(self.entity_cls.model_json_schema(), indent=2)

    def format_instructions(self) -> str:
        return (
            "Your response must be a single JSON object and nothing else.\n"
            "Do not add explanations and do not wrap the JSON in markdown code blocks.\n"
            "The JSON must validate against this JSON Schema:\n"
            f"{self.json_schema()}"
        )

    @staticmethod
    def strip_fences(text: str) -> str:
        """Remove a surrounding ```json ... ``` block if the model added one anyway."""
        text = text.strip()
        if text.startswith(_FENCE) and text.endswith(_FENCE) and len(text) > 2 * len(_FENCE):
            text = text[len(_FENCE):-len(_FENCE)]
            first_line, _, rest = text.partition("\n")
            if first_line.strip().lower() in ("json", ""):
                text = rest
        return text.strip()

    def convert(self, text: str) -> T:
        cleaned = self.strip_fences(text or "")
        if not cleaned:
            raise OutputParseError(
                f"Model returned no content to parse as {self.entity_cls.__name__}", text=text or ""
            )
        try:
            return self.entity_cls.model_validate_json(cleaned)
        except ValidationError as exc:
            raise OutputParseError(
                f"Model answer is not a valid {self.entity_cls.__name__}: {exc}", text=text
            ) from exc


__all__ = ["EntityOutputConverter"]

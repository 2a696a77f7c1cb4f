from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, field_validator


class ToolDefinition(BaseModel):
    """Description of a tool exposed to the model so it can decide to call it."""

    model_config = ConfigDict(frozen=True)

    name: str  # unique within a request
    description: str = ""
    input_schema: str = '{"type": "object", "properties": {}}'  # JSON Schema text

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Tool name must be non-empty")
        return v

    @field_validator("input_schema")
    @classmethod
    def _schema_is_json(cls, v: str) -> str:
        try:
            json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"input_schema must be valid JSON: {e}") from e
        return v


__all__ = ["ToolDefinition"]

"""Convert ToolDefinitions to the OpenAI-compatible ``tools`` request field."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from chatflow.types.tools import ToolDefinition


def tools_to_openai_schemas(definitions: List[ToolDefinition]) -> List[Dict[str, Any]]:
    """Return a list of dicts: {"type": "function", "function": {"name", "description", "parameters"}}."""
    result = []
    for definition in definitions:
        result.append({
            "type": "function",
            "function": {
                "name": definition.name,
                "description": definition.description,
                "parameters": json.loads(definition.input_schema),
            },
        })
    return result


__all__ = ["tools_to_openai_schemas"]

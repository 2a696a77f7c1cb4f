"""Concrete ToolCallback implementations: class-based tools and plain functions."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Optional

from chatflow.service.errors import ToolExecutionError
from chatflow.types.tools import ToolDefinition


def _decode_arguments(tool_name: str, arguments_json: str) -> Dict[str, Any]:
    if not arguments_json or not arguments_json.strip():
        return {}
    try:
        args = json.loads(arguments_json)
    except json.JSONDecodeError as e:
        raise ToolExecutionError(tool_name, f"{tool_name} received invalid JSON arguments: {e}") from e
    if not isinstance(args, dict):
        raise ToolExecutionError(tool_name, f"{tool_name} expects a JSON object of arguments")
    return args


def _encode_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result)


class BaseTool:
    """Class-based tool: subclasses set name, description, parameters and implement run().

    ``parameters`` is a JSON Schema dict; ``run`` receives decoded arguments and
    returns anything JSON-serializable (strings are passed through unchanged).
    """

    name: str = ""
    description: str = ""
    parameters: Dict[str, Any] = {"type": "object", "properties": {}}

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=json.dumps(self.parameters),
        )

    def call(self, arguments_json: str, context: Dict[str, Any]) -> str:
        args = _decode_arguments(self.name, arguments_json)
        return _encode_result(self.run(args, context))

    def run(self, args: Dict[str, Any], context: Dict[str, Any]) -> Any:
        raise NotImplementedError(f"Tool {self.name!r} does not implement run()")


class FunctionToolCallback:
    """Wrap a plain callable ``func(args, context)`` as a tool."""

    def __init__(
        self,
        name: str,
        func: Callable[[Dict[str, Any], Dict[str, Any]], Any],
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._definition = ToolDefinition(
            name=name,
            description=description,
            input_schema=json.dumps(parameters or {"type": "object", "properties": {}}),
        )
        self._func = func

    def definition(self) -> ToolDefinition:
        return self._definition

    def call(self, arguments_json: str, context: Dict[str, Any]) -> str:
        args = _decode_arguments(self._definition.name, arguments_json)
        return _encode_result(self._func(args, context))

    def __repr__(self) -> str:
        return f"FunctionToolCallback(name={self._definition.name!r})"


__all__ = ["BaseTool", "FunctionToolCallback"]

"""Built-in tools for testing and demos."""

from __future__ import annotations

from typing import Any, Dict

from chatflow.service.errors import ToolExecutionError

from .callbacks import BaseTool


class AddNumberTool(BaseTool):
    """Adds two numbers. Integral sums come back as ints.

    ``context["round_digits"]`` (optional) rounds the sum.
    """

    name = "add_number"
    description = "Add two numbers together and return the sum."
    parameters = {
        "type": "object",
        "properties": {
            "a": {"type": "number", "description": "First number"},
            "b": {"type": "number", "description": "Second number"},
        },
        "required": ["a", "b"],
    }

    def run(self, args: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        missing = [key for key in ("a", "b") if args.get(key) is None]
        if missing:
            raise ToolExecutionError(self.name, f"{self.name} is missing argument(s): {', '.join(missing)}")
        try:
            total = float(args["a"]) + float(args["b"])
        except (TypeError, ValueError) as exc:
            raise ToolExecutionError(self.name, f"{self.name} expects numeric a and b: {exc}") from exc
        digits = context.get("round_digits")
        if digits is not None:
            total = round(total, int(digits))
        return {"result": int(total) if total.is_integer() else total}


__all__ = ["AddNumberTool"]

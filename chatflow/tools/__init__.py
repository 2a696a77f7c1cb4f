from .builtins import AddNumberTool
from .callbacks import BaseTool, FunctionToolCallback
from .interfaces import ToolCallback, ToolDefinition
from .loop import DEFAULT_MAX_ITERATIONS, ToolCallingLoop
from .registry import ToolRegistry
from .schema import tools_to_openai_schemas

__all__ = [
    "AddNumberTool",
    "BaseTool",
    "FunctionToolCallback",
    "ToolCallback",
    "ToolDefinition",
    "DEFAULT_MAX_ITERATIONS",
    "ToolCallingLoop",
    "ToolRegistry",
    "tools_to_openai_schemas",
]

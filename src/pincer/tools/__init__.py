"""Tool system for pincer.

Tools are capabilities the model can invoke. Each tool validates its input
before any side effect and runs under an explicit sandbox and policy.
"""

from pincer.tools.base import (
    BaseTool,
    InvalidToolInputError,
    RawInput,
    Tool,
    ToolContext,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    parse_input,
)
from pincer.tools.models import ToolParameter
from pincer.tools.registry import ReadWriteLock, ToolRegistry, default_registry

__all__ = [
    "BaseTool",
    "InvalidToolInputError",
    "RawInput",
    "ReadWriteLock",
    "Tool",
    "ToolContext",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolParameter",
    "ToolRegistry",
    "default_registry",
    "parse_input",
]

"""Tool catalog access, execution and argument validation."""

from .executor import MCPToolExecutor
from .executor import ToolExecutor
from .validation import ValidationResult
from .validation import render_tool_output
from .validation import validate_arguments

__all__ = [
    "MCPToolExecutor",
    "ToolExecutor",
    "ValidationResult",
    "render_tool_output",
    "validate_arguments",
]

"""Models for mcpchat library."""

from .base import CamelCaseModel
from .chat import ChatMessage
from .chat import ChatSession
from .chat import CompletionResult
from .chat import MessageRole
from .chat import ToolCall
from .chat import ToolOutput
from .chat import ToolResult
from .chat import ToolSpec
from .chat import TurnResult

__all__ = [
    "CamelCaseModel",
    "ChatMessage",
    "ChatSession",
    "CompletionResult",
    "MessageRole",
    "ToolCall",
    "ToolOutput",
    "ToolResult",
    "ToolSpec",
    "TurnResult",
]

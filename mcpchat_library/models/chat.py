"""Chat conversation models.

These models are shared by the session store, the completion and tool
adapters, and the orchestration engine. Tool arguments and results use
pydantic's ``JsonValue`` so that every payload is a tagged JSON value
(string, number, boolean, null, array or object) rather than an arbitrary
Python object.
"""

import uuid
from datetime import UTC
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field
from pydantic import JsonValue

from mcpchat_library.models.base import CamelCaseModel


def _new_message_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


class MessageRole(str, Enum):
    """Author of a persisted chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ToolCall(CamelCaseModel):
    """A request from the model to invoke one tool."""

    id: str = Field(description="Call identifier assigned by the completion provider")
    name: str = Field(description="Tool name as listed in the catalog")
    arguments: dict[str, JsonValue] = Field(default_factory=dict, description="Structured tool arguments")


class ToolResult(CamelCaseModel):
    """Outcome of one tool call.

    Exactly one of ``result`` and ``error`` is meaningful: a result with a
    non-empty ``error`` is a failed call.
    """

    id: str = Field(description="Identifier of the ToolCall this result answers")
    result: JsonValue = Field(default=None, description="Tool output payload")
    error: str | None = Field(default=None, description="Failure description if the call failed")

    @property
    def is_error(self) -> bool:
        return self.error is not None


class ChatMessage(CamelCaseModel):
    """A single message in a chat session."""

    id: str = Field(default_factory=_new_message_id, description="Message identifier, unique within the session")
    role: MessageRole = Field(description="Message author")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(default_factory=_utc_now, description="Creation time (UTC)")
    tool_calls: list[ToolCall] | None = Field(default=None, description="Tool calls requested by the assistant")
    tool_results: list[ToolResult] | None = Field(default=None, description="Results of the requested tool calls")


class ChatSession(CamelCaseModel):
    """Persisted session document.

    Stored as one JSON file per session in state/chat_sessions/{session_id}.json.
    """

    session_id: str = Field(description="Session identifier")
    user_id: str = Field(description="Owning user")
    messages: list[ChatMessage] = Field(default_factory=list, description="Messages in append order")
    created_at: datetime = Field(description="Session creation timestamp")
    updated_at: datetime = Field(description="Last append timestamp")


class ToolSpec(CamelCaseModel):
    """Catalog entry describing one callable tool."""

    name: str = Field(description="Tool name")
    description: str = Field(default="", description="Human-readable description")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema of the tool arguments",
    )


class ToolOutput(CamelCaseModel):
    """Raw output returned by a tool executor."""

    content: JsonValue = Field(default=None, description="Output payload")
    is_error: bool = Field(default=False, description="Whether the tool reported a failure")


class CompletionResult(CamelCaseModel):
    """Reply from a completion provider."""

    text: str = Field(default="", description="Assistant text, possibly empty")
    tool_calls: list[ToolCall] = Field(default_factory=list, description="Tool calls requested by the model")

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class TurnResult(CamelCaseModel):
    """Outcome of one completed chat turn."""

    session_id: str
    user_message: ChatMessage
    assistant_message: ChatMessage
    summarized: bool = Field(default=False, description="Whether a follow-up summary replaced the original text")

    @property
    def failed_tool_results(self) -> list[ToolResult]:
        """Tool results that carry an error."""
        return [result for result in self.assistant_message.tool_results or [] if result.is_error]

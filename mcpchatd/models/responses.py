"""Response models for mcpchatd API."""

from datetime import datetime

from pydantic import Field

from mcpchat_library.models.base import CamelCaseModel
from mcpchat_library.models.chat import ChatMessage


class TurnResponse(CamelCaseModel):
    """Outcome of a chat turn."""

    session_id: str = Field(description="Session the turn ran in")
    user_message: ChatMessage = Field(description="Stored user message")
    assistant_message: ChatMessage = Field(description="Finalized assistant message")
    summarized: bool = Field(description="Whether the reply is a summary of tool results")


class SaveMessageResponse(CamelCaseModel):
    success: bool = True
    session_id: str
    role: str
    timestamp: datetime


class HistoryResponse(CamelCaseModel):
    success: bool = True
    history: list[ChatMessage] = Field(default_factory=list)


class SessionSummary(CamelCaseModel):
    """Summary of a chat session for listings."""

    session_id: str
    message_count: int
    created_at: datetime
    updated_at: datetime


class SessionListResponse(CamelCaseModel):
    sessions: list[SessionSummary] = Field(default_factory=list)


class CancelResponse(CamelCaseModel):
    session_id: str
    cancelled: bool


class StatusResponse(CamelCaseModel):
    """Daemon status information.

    Attributes:
        status: Daemon status
        version: Daemon version
        uptime_seconds: Seconds since start
        completion_configured: Whether a completion provider is configured
        tools_configured: Whether a tool server is configured
        history_enabled: Whether conversations are persisted
        active_turns: Turns currently in flight
    """

    status: str = Field(..., description="Daemon status")
    version: str = Field(..., description="Daemon version")
    uptime_seconds: float = Field(..., description="Seconds since start")
    completion_configured: bool
    tools_configured: bool
    history_enabled: bool
    active_turns: int

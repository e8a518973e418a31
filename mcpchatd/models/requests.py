"""Request models for mcpchatd API."""

from pydantic import Field

from mcpchat_library.models.base import CamelCaseModel


class ChatRequest(CamelCaseModel):
    """Run a chat turn.

    Attributes:
        message: User input
        session_id: Existing session to continue (new session if omitted)
    """

    message: str = Field(..., min_length=1, description="User message")
    session_id: str | None = Field(default=None, description="Session to continue")


class SaveMessageRequest(CamelCaseModel):
    """Persist a single message without running a turn.

    Attributes:
        message: Message content
        session_id: Target session (new session if omitted)
        role: "user" or "assistant"; anything else is stored as "user"
    """

    message: str = Field(..., min_length=1, description="Message content")
    session_id: str | None = Field(default=None, description="Target session")
    role: str = Field(default="user", description="Message role")

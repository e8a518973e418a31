"""Error models for mcpchatd API."""

from pydantic import Field

from mcpchat_library.models.base import CamelCaseModel


class ErrorResponse(CamelCaseModel):
    """Standard error response.

    Attributes:
        error: Error category
        detail: Human-readable explanation
        retry_after: Seconds to wait before retrying (rate limits only)
    """

    error: str = Field(..., description="Error category")
    detail: str | None = Field(default=None, description="Additional error details")
    retry_after: int | None = Field(default=None, description="Seconds until the rate limit window resets")

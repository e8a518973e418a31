"""Error taxonomy for chat orchestration.

Contract:
- Adapters raise ProviderError / ExecutorError for their own failures
- The engine raises UnauthorizedError, RateLimitedError and
  CompletionUnavailableError to callers
- Tool failures are never raised; they are recorded on ToolResult.error
- Cancellation is plain asyncio.CancelledError
"""


class ChatError(Exception):
    """Base class for chat orchestration errors."""


class UnauthorizedError(ChatError):
    """Caller is not permitted to use chat."""


class NotOwnerError(UnauthorizedError):
    """Session exists and belongs to another user."""

    def __init__(self, session_id: str, user_id: str) -> None:
        super().__init__(f"Session {session_id} is not owned by user {user_id}")
        self.session_id = session_id
        self.user_id = user_id


class RateLimitedError(ChatError):
    """Per-user throttle rejected the request."""

    def __init__(self, action: str, retry_after: float) -> None:
        super().__init__(f"Rate limit exceeded for action '{action}'")
        self.action = action
        self.retry_after = retry_after


class ProviderError(ChatError):
    """Completion provider call failed."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class CompletionUnavailableError(ChatError):
    """The first completion of a turn could not be obtained."""


class ExecutorError(ChatError):
    """Tool executor call failed."""

    def __init__(self, message: str, tool_name: str | None = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class TurnCancelledError(ChatError):
    """An in-flight turn was cancelled by its caller.

    Raised by transports that track turns; inside the engine cancellation
    is a plain asyncio.CancelledError.
    """

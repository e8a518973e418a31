"""API models for mcpchatd."""

from .errors import ErrorResponse
from .requests import ChatRequest
from .requests import SaveMessageRequest
from .responses import CancelResponse
from .responses import HistoryResponse
from .responses import SaveMessageResponse
from .responses import SessionListResponse
from .responses import SessionSummary
from .responses import StatusResponse
from .responses import TurnResponse

__all__ = [
    "CancelResponse",
    "ChatRequest",
    "ErrorResponse",
    "HistoryResponse",
    "SaveMessageRequest",
    "SaveMessageResponse",
    "SessionListResponse",
    "SessionSummary",
    "StatusResponse",
    "TurnResponse",
]

"""Chat session persistence."""

from .store import SessionStore
from .store import generate_session_id
from .store import validate_session_id

__all__ = [
    "SessionStore",
    "generate_session_id",
    "validate_session_id",
]

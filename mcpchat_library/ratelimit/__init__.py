"""Rate limiting for chat and tool actions."""

from .limiter import ExpiringCounterStore
from .limiter import RateLimiter

__all__ = [
    "ExpiringCounterStore",
    "RateLimiter",
]

"""Daemon services: retention scheduling and in-flight turn tracking."""

from .retention_scheduler import RetentionScheduler
from .turn_registry import TurnRegistry
from .turn_registry import get_turn_registry

__all__ = [
    "RetentionScheduler",
    "TurnRegistry",
    "get_turn_registry",
]

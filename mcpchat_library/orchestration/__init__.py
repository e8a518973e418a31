"""Chat turn orchestration."""

from .engine import ChatEngine
from .engine import EngineConfig

__all__ = [
    "ChatEngine",
    "EngineConfig",
]

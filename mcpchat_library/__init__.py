"""Chat orchestration library.

This is the business logic layer that sits between mcpchatd (transport)
and the external completion provider and MCP tool server.

Public Interface:
    Modules:
    - storage: Storage path resolution
    - config: Configuration loading
    - models: Shared data structures
    - sessions: Per-user session persistence
    - ratelimit: Per-user fixed-window throttles
    - tools: MCP tool executor and argument validation
    - completion: OpenAI-compatible completion provider
    - orchestration: Chat turn engine
"""

# Re-export key types for convenience
from .models import ChatMessage
from .models import ChatSession
from .orchestration import ChatEngine

__all__ = [
    "ChatEngine",
    "ChatMessage",
    "ChatSession",
]

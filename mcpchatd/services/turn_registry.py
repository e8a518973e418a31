"""Registry of in-flight chat turns.

Each running turn is an asyncio task keyed by (user_id, session_id), so the
cancel endpoint can abort the caller's own turn. At most one turn per key is
tracked; a new turn for the same key replaces the entry without cancelling
the old task.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any
from typing import TypeVar

from mcpchat_library.errors import TurnCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TurnRegistry:
    """Tracks running turn tasks so they can be cancelled."""

    def __init__(self) -> None:
        self._tasks: dict[tuple[str, str], asyncio.Task[Any]] = {}
        self._lock = asyncio.Lock()

    async def run(self, user_id: str, session_id: str, coro: Coroutine[Any, Any, T]) -> T:
        """Run a turn coroutine as a tracked task and await its result.

        Raises:
            TurnCancelledError: If the turn was cancelled via cancel()
        """
        key = (user_id, session_id)
        try:
            async with self._lock:
                task = asyncio.create_task(coro)
                self._tasks[key] = task
        except asyncio.CancelledError:
            # Cancelled before registration; the turn never starts
            coro.close()
            raise

        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and not (current and current.cancelling()):
                raise TurnCancelledError(f"Turn for session {session_id} was cancelled") from None
            raise
        finally:
            async with self._lock:
                if self._tasks.get(key) is task:
                    del self._tasks[key]

    async def cancel(self, user_id: str, session_id: str) -> bool:
        """Cancel the caller's in-flight turn for a session.

        Returns:
            True if a running turn was cancelled, False if none was active
        """
        async with self._lock:
            task = self._tasks.get((user_id, session_id))

        if task is None or task.done():
            return False

        task.cancel()
        logger.info(f"Cancelled turn for session {session_id} (user {user_id})")
        return True

    def active_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def cancel_all(self) -> None:
        """Cancel every running turn (for shutdown)."""
        async with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"Cancelled {len(tasks)} in-flight turns")


_turn_registry = TurnRegistry()


def get_turn_registry() -> TurnRegistry:
    """Get global turn registry.

    Returns:
        Global TurnRegistry singleton
    """
    return _turn_registry

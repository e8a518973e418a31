"""Per-user fixed-window rate limiting.

Counters live in an in-process expiring store keyed by (user, action). The
window starts at the first request and is never extended by later ones, so
a key resets exactly ``window_seconds`` after its first hit. Like any fixed
window this admits a burst of up to twice the limit across a boundary.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from mcpchat_library.errors import RateLimitedError

logger = logging.getLogger(__name__)


@dataclass
class _Counter:
    count: int
    expires_at: float


class ExpiringCounterStore:
    """Thread-safe counters that vanish after their expiry time."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._counters: dict[str, _Counter] = {}
        self._lock = threading.Lock()

    def increment_below(self, key: str, limit: int, ttl: float) -> tuple[bool, float]:
        """Increment ``key`` unless it already reached ``limit``.

        A missing or expired key starts a new window of ``ttl`` seconds.

        Returns:
            (incremented, seconds until the window resets)
        """
        with self._lock:
            now = self._clock()
            counter = self._counters.get(key)
            if counter is None or counter.expires_at <= now:
                counter = _Counter(count=0, expires_at=now + ttl)
                self._counters[key] = counter
            if counter.count >= limit:
                return False, counter.expires_at - now
            counter.count += 1
            return True, counter.expires_at - now

    def count(self, key: str) -> int:
        with self._lock:
            counter = self._counters.get(key)
            if counter is None or counter.expires_at <= self._clock():
                return 0
            return counter.count

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, counter in self._counters.items() if counter.expires_at <= now]
            for key in expired:
                del self._counters[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)


class RateLimiter:
    """Per-user, per-action request throttle."""

    def __init__(self, store: ExpiringCounterStore | None = None) -> None:
        self.store = store if store is not None else ExpiringCounterStore()

    def allow(self, user_id: str, action: str, max_requests: int, window_seconds: float) -> bool:
        """Count one request if under the limit and report whether it was admitted."""
        allowed, _ = self._check(user_id, action, max_requests, window_seconds)
        return allowed

    def enforce(self, user_id: str, action: str, max_requests: int, window_seconds: float) -> None:
        """Count one request, raising if the limit is already reached.

        Raises:
            RateLimitedError: With the seconds remaining in the current window
        """
        allowed, retry_after = self._check(user_id, action, max_requests, window_seconds)
        if not allowed:
            logger.warning(f"Rate limit exceeded: user={user_id} action={action} limit={max_requests}/{window_seconds}s")
            raise RateLimitedError(action, retry_after)

    def _check(self, user_id: str, action: str, max_requests: int, window_seconds: float) -> tuple[bool, float]:
        key = f"{user_id}:{action}"
        if self.store.count(key) == 0:
            # Purge stale keys whenever a new window opens
            self.store.purge_expired()
        return self.store.increment_below(key, max_requests, window_seconds)

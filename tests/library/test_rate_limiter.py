"""Tests for the fixed-window rate limiter."""

import pytest

from mcpchat_library.errors import RateLimitedError
from mcpchat_library.ratelimit.limiter import ExpiringCounterStore
from mcpchat_library.ratelimit.limiter import RateLimiter


@pytest.mark.unit
class TestAllow:
    def test_limit_then_reset_after_window(self, rate_limiter: RateLimiter, clock) -> None:
        """Calls 1-3 pass, call 4 fails, and a call after the window passes again."""
        results = [rate_limiter.allow("alice", "chat", 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

        clock.advance(61)

        assert rate_limiter.allow("alice", "chat", 3, 60) is True

    def test_window_is_not_extended_by_later_requests(self, rate_limiter: RateLimiter, clock) -> None:
        assert rate_limiter.allow("alice", "chat", 2, 60)
        clock.advance(50)
        assert rate_limiter.allow("alice", "chat", 2, 60)
        assert not rate_limiter.allow("alice", "chat", 2, 60)

        # 60s after the first request, not the last
        clock.advance(11)
        assert rate_limiter.allow("alice", "chat", 2, 60)

    def test_rejected_calls_do_not_increment(self, rate_limiter: RateLimiter) -> None:
        for _ in range(5):
            rate_limiter.allow("alice", "chat", 1, 60)

        assert rate_limiter.store.count("alice:chat") == 1

    def test_users_and_actions_are_independent(self, rate_limiter: RateLimiter) -> None:
        assert rate_limiter.allow("alice", "chat", 1, 60)
        assert not rate_limiter.allow("alice", "chat", 1, 60)

        assert rate_limiter.allow("bob", "chat", 1, 60)
        assert rate_limiter.allow("alice", "tool", 1, 60)


@pytest.mark.unit
class TestEnforce:
    def test_raises_with_retry_after(self, rate_limiter: RateLimiter, clock) -> None:
        rate_limiter.enforce("alice", "chat", 1, 60)
        clock.advance(20)

        with pytest.raises(RateLimitedError) as exc_info:
            rate_limiter.enforce("alice", "chat", 1, 60)

        assert exc_info.value.action == "chat"
        assert exc_info.value.retry_after == pytest.approx(40)


@pytest.mark.unit
class TestExpiringCounterStore:
    def test_empty_injected_store_is_kept(self, clock) -> None:
        store = ExpiringCounterStore(clock=clock.monotonic)

        limiter = RateLimiter(store)
        limiter.allow("alice", "chat", 1, 60)

        assert limiter.store is store
        assert store.count("alice:chat") == 1

    def test_expired_keys_are_purged(self, clock) -> None:
        store = ExpiringCounterStore(clock=clock.monotonic)
        store.increment_below("a", 5, 10)
        store.increment_below("b", 5, 100)

        clock.advance(11)

        assert store.purge_expired() == 1
        assert len(store) == 1
        assert store.count("a") == 0
        assert store.count("b") == 1

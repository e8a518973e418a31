"""Retention sweep scheduler for mcpchatd.

Runs SessionStore.sweep_expired on a recurring APScheduler job.

Architecture:
- Uses APScheduler AsyncIOScheduler with a single job
- Parses the schedule setting (interval like "1d" or 5/6-part cron)
- Lifecycle: start with daemon, stop on shutdown
"""

import logging
import re
from datetime import UTC
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from mcpchat_library.sessions.store import SessionStore

logger = logging.getLogger(__name__)

JOB_ID = "chat-retention-sweep"

_INTERVAL_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class RetentionScheduler:
    """Schedules the periodic removal of expired chat sessions."""

    def __init__(self, store: SessionStore, retention_days: int = 30, schedule: str = "1d") -> None:
        """Initialize retention scheduler.

        Args:
            store: Session store to sweep
            retention_days: Sessions idle longer than this are removed
            schedule: Interval ("30m", "1d") or cron expression ("0 3 * * *")

        Raises:
            ValueError: If schedule cannot be parsed
        """
        self.store = store
        self.retention_days = retention_days
        self.trigger = parse_schedule(schedule)
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start scheduler and register the sweep job. Idempotent."""
        if self._running:
            logger.warning("Retention scheduler already running")
            return

        self.scheduler.add_job(
            func=self._sweep,
            trigger=self.trigger,
            id=JOB_ID,
            name="Chat session retention sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.start()
        self._running = True

        next_fire_time = self.trigger.get_next_fire_time(None, datetime.now(UTC))
        logger.info(f"Retention scheduler started (retention={self.retention_days}d, next sweep: {next_fire_time})")

    async def stop(self) -> None:
        """Stop scheduler gracefully."""
        if not self._running:
            logger.warning("Retention scheduler not running")
            return

        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Retention scheduler stopped")

    def run_now(self) -> int:
        """Sweep immediately, bypassing the schedule.

        Returns:
            Number of sessions removed
        """
        return self.store.sweep_expired(self.retention_days)

    def _sweep(self) -> None:
        try:
            removed = self.store.sweep_expired(self.retention_days)
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}", exc_info=True)
            return
        logger.info(f"Retention sweep removed {removed} sessions")


def parse_schedule(value: str) -> BaseTrigger:
    """Parse a schedule string into an APScheduler trigger.

    Examples:
        "1d" -> every day
        "30m" -> every 30 minutes
        "0 3 * * *" -> daily at 03:00 UTC

    Raises:
        ValueError: If the format is not recognised
    """
    value = value.strip()
    match = re.match(r"^(\d+)([smhd])$", value)
    if match:
        amount = int(match.group(1))
        if amount <= 0:
            raise ValueError(f"Interval must be positive: {value}")
        return IntervalTrigger(seconds=amount * _INTERVAL_SECONDS[match.group(2)], timezone="UTC")

    parts = value.split()
    if len(parts) == 5:
        minute, hour, day, month, day_of_week = parts
        return CronTrigger(minute=minute, hour=hour, day=day, month=month, day_of_week=day_of_week, timezone="UTC")
    if len(parts) == 6:
        second, minute, hour, day, month, day_of_week = parts
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone="UTC",
        )
    raise ValueError(f"Invalid schedule (expected interval like '1d' or 5/6-part cron): {value}")

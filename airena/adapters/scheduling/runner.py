"""
Reminder runner - Background timers for the reminder sweeps.

Runs two independent asyncio loops inside the application process:
- hourly: at the top of every hour
- daily: once a day at `daily_hour` in `timezone`

Sweeps are synchronous (database and email I/O) and run in a worker
thread. The loops do not coordinate; the reminder ledger keeps overlapping
sweeps from sending twice.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from airena.domain.reminders import ReminderScheduler, SweepReport

logger = logging.getLogger(__name__)


def seconds_until_next_hour(now: datetime) -> float:
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds()


def seconds_until_daily(now: datetime, tz: ZoneInfo, hour: int) -> float:
    """Seconds from `now` until the next `hour`:00 local time in `tz`."""
    local_now = now.astimezone(tz)
    target = local_now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= local_now:
        target += timedelta(days=1)
    return (target - local_now).total_seconds()


class ReminderRunner:
    """Drives ReminderScheduler sweeps on fixed timers."""

    def __init__(
        self,
        scheduler: ReminderScheduler,
        timezone_name: str = "UTC",
        daily_hour: int = 9,
    ) -> None:
        self.scheduler = scheduler
        self.tz = ZoneInfo(timezone_name)
        self.daily_hour = daily_hour
        self.running = False
        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        """Start both sweep loops."""
        if self.running:
            logger.warning("Reminder runner is already running")
            return

        self.running = True
        self._tasks = [
            asyncio.create_task(
                self._loop("hourly", seconds_until_next_hour, self.scheduler.run_hourly_sweep)
            ),
            asyncio.create_task(
                self._loop(
                    "daily",
                    lambda now: seconds_until_daily(now, self.tz, self.daily_hour),
                    self.scheduler.run_daily_sweep,
                )
            ),
        ]
        logger.info("Reminder runner started (daily at %02d:00 %s)", self.daily_hour, self.tz.key)

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        if not self.running:
            return

        self.running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Reminder runner stopped")

    async def _loop(
        self,
        name: str,
        delay: Callable[[datetime], float],
        sweep: Callable[[], SweepReport],
    ) -> None:
        logger.info("Reminder loop %s started", name)
        while self.running:
            try:
                await asyncio.sleep(delay(datetime.now(timezone.utc)))
                if self.running:
                    await asyncio.to_thread(sweep)
            except asyncio.CancelledError:
                logger.info("Reminder loop %s cancelled", name)
                raise
            except Exception as e:
                # Sweeps handle their own errors; keep the timer alive regardless
                logger.error(f"Error in reminder loop {name}: {e}")
                await asyncio.sleep(60)

"""Background scheduling: periodic bulk refresh and the midnight rollover."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, List, Optional, Sequence

from ..cache.store import CacheStore
from ..config import CacheConfig
from ..models.horoscope import FetchRequest, Period, cache_key, expand_requests
from ..utils.clock import Clock
from .request_queue import RequestQueue

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def next_midnight(now: datetime) -> datetime:
    """Get the start of the day after ``now``."""
    return datetime(now.year, now.month, now.day) + timedelta(days=1)


def seconds_until_midnight(now: datetime, tz: Optional[tzinfo] = None) -> float:
    """Real seconds from ``now`` to the next local midnight (always > 0).

    Both ends are resolved to UTC offsets first, so days with a daylight
    saving change give their true length (23 or 25 hours).

    Args:
        now: Naive local time
        tz: Zone the naive times belong to (the system zone if None)
    """
    midnight = next_midnight(now)
    if tz is None:
        start, end = now.astimezone(), midnight.astimezone()
    else:
        start, end = now.replace(tzinfo=tz), midnight.replace(tzinfo=tz)
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()


def period_boundary_passed(period: str, day: datetime) -> bool:
    """Check whether ``day`` is the first day of the period's cycle.

    Weeks start on Monday.
    """
    if period in (Period.DAILY.value, Period.TOMORROW.value):
        return True
    if period == Period.WEEKLY.value:
        return day.weekday() == 0
    if period == Period.MONTHLY.value:
        return day.day == 1
    if period == Period.YEARLY.value:
        return day.month == 1 and day.day == 1
    return False


class Scheduler:
    """Keeps the cache warm without any incoming requests.

    - Bulk refresh: every ``refresh_interval`` seconds, queue every configured
      (category, period) pair. Fresh entries turn into cheap cache hits.
    - Daily rollover: at each local midnight, move tomorrow's text into the
      daily slot and queue the periods whose cycle just began.
    """

    def __init__(
        self,
        queue: RequestQueue,
        store: CacheStore,
        clock: Clock,
        categories: Sequence[str],
        periods: Sequence[str],
        refresh_interval: float = 12 * 3600,
        max_age: Optional[Callable[[str], timedelta]] = None,
        sleep: Optional[SleepFunc] = None,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize scheduler.

        Args:
            queue: Request queue to feed
            store: Cache store used for rotation and freshness checks
            clock: Clock giving local "now"
            categories: Configured zodiac signs
            periods: Periods to keep cached (including tomorrow)
            refresh_interval: Seconds between bulk refreshes
            max_age: Freshness window per period
            sleep: Async sleep (asyncio.sleep by default)
            tz: Zone used to measure the wait until midnight (system zone if None)
        """
        self.queue = queue
        self.store = store
        self.clock = clock
        self.categories = list(categories)
        self.periods = list(periods)
        self.refresh_interval = refresh_interval
        self.max_age = max_age or CacheConfig().max_age
        self._sleep = sleep or asyncio.sleep
        self.tz = tz
        self._last_rollover: Optional[date] = None
        self._tasks: List[asyncio.Task] = []

    def start(self, daily_rollover: bool = True) -> None:
        """Start the background loops. Must be called from a running event loop."""
        if self._tasks:
            return
        self._tasks.append(
            asyncio.create_task(
                self.schedule_bulk_refresh(self.refresh_interval),
                name="bulk-refresh",
            )
        )
        if daily_rollover:
            self._tasks.append(
                asyncio.create_task(self.schedule_daily_rollover(), name="daily-rollover")
            )

    async def stop(self) -> None:
        """Cancel the background loops."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    # === Bulk refresh ===

    def enqueue_all(self) -> List[FetchRequest]:
        """Queue one request per configured (category, period) pair."""
        requests = [
            self.queue.enqueue(request.category, request.period)
            for request in expand_requests(self.categories, self.periods)
        ]
        logger.info(f"Queued bulk refresh of {len(requests)} horoscopes")
        return requests

    async def schedule_bulk_refresh(self, interval: float) -> None:
        """Queue every pair now and then again every ``interval`` seconds."""
        while True:
            self.enqueue_all()
            next_run = self.clock.now() + timedelta(seconds=interval)
            logger.debug(f"Next bulk refresh at {next_run:%Y-%m-%d %H:%M}")
            await self._sleep(interval)

    # === Midnight rollover ===

    async def schedule_daily_rollover(self) -> None:
        """Run ``rollover`` once at every local midnight.

        The delay is recomputed each day rather than using a fixed period.
        A wake-up that is still on the same day, or on a day that already
        rolled over, just waits again.
        """
        while True:
            now = self.clock.now()
            delay = seconds_until_midnight(now, self.tz)
            logger.info(f"Next midnight rollover scheduled for {next_midnight(now):%Y-%m-%d %H:%M}")
            await self._sleep(delay)

            woke = self.clock.now()
            if woke.date() <= now.date() or woke.date() == self._last_rollover:
                logger.debug(f"Woke at {woke:%Y-%m-%d %H:%M:%S} before the next day, waiting again")
                continue

            try:
                self.rollover(woke)
            except Exception:
                logger.exception("Midnight rollover failed")

    def rollover(self, now: Optional[datetime] = None) -> List[FetchRequest]:
        """Promote tomorrow's text to daily and queue newly started periods.

        Args:
            now: Moment of the rollover (defaults to clock.now()); also the
                timestamp given to the promoted entries

        Returns:
            Requests that were queued
        """
        now = now or self.clock.now()
        daily = Period.DAILY.value
        tomorrow = Period.TOMORROW.value
        self._last_rollover = now.date()

        for category in self.categories:
            moved = self.store.rotate(
                cache_key(category, tomorrow),
                cache_key(category, daily),
                fetched_at=now,
            )
            if not moved:
                logger.debug(f"No tomorrow horoscope cached for {category}, nothing to rotate")

        queued: List[FetchRequest] = []
        for category in self.categories:
            for period in self._rollover_periods():
                if not period_boundary_passed(period, now):
                    continue
                if period not in (daily, tomorrow):
                    # Longer cycles are only refetched if nothing fresh is cached
                    if self.store.get_fresh(cache_key(category, period), self.max_age(period)):
                        continue
                queued.append(self.queue.enqueue(category, period))

        logger.info(
            f"Midnight rollover for {now:%Y-%m-%d}: queued {len(queued)} refreshes"
        )
        return queued

    def _rollover_periods(self) -> List[str]:
        periods = [Period.DAILY.value]
        if Period.TOMORROW.value in self.periods:
            periods.append(Period.TOMORROW.value)
        for period in (Period.WEEKLY.value, Period.MONTHLY.value, Period.YEARLY.value):
            if period in self.periods:
                periods.append(period)
        return periods

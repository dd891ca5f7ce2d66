"""The fetch context: one object owning cache, queue, fetcher and scheduler."""

import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from ..cache.store import CacheStore
from ..config import Config
from ..errors import ConfigInvalid
from ..fetcher.extractors import ContentExtractor, get_extractor
from ..fetcher.retry import RetryingFetcher
from ..models.horoscope import (
    CacheCleared,
    FetchRequest,
    cache_key,
    expand_requests,
    normalize_category,
    normalize_period,
)
from ..utils.clock import Clock
from .events import EventBus, Listener
from .request_queue import RequestQueue
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class FetchContext:
    """Entry point used by the CLI and any presentation layer.

    Holds the cache store, request queue, worker pool and scheduler, and
    exposes the inbound operations (refresh, clear, simulated clock) plus
    event subscription for the outbound ones.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        extractor: Optional[ContentExtractor] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize fetch context.

        Args:
            config: Configuration (defaults used if None)
            extractor: Content extractor (built from config.source if None)
            clock: Clock (real time if None)
            sleep: Async sleep for retry delays, cooldowns and schedules
        """
        self.config = config or Config()
        self.clock = clock or Clock()
        self.events = EventBus()

        self.store = CacheStore(self.config.paths.cache_file, clock=self.clock)

        fetch_cfg = self.config.fetch
        self.extractor = extractor or get_extractor(
            self.config.source.provider,
            self.config.source,
            timeout=fetch_cfg.request_timeout_seconds,
        )
        self.fetcher = RetryingFetcher(
            self.extractor,
            max_retries=fetch_cfg.max_retries,
            retry_delay=fetch_cfg.retry_delay_seconds,
            timeout=fetch_cfg.request_timeout_seconds,
            sleep=sleep,
        )
        self.queue = RequestQueue(
            self.store,
            self.fetcher,
            self.events,
            pool_size=fetch_cfg.pool_size,
            cooldown=fetch_cfg.cooldown_seconds,
            max_age=self.config.cache.max_age,
            sleep=sleep,
        )
        self.scheduler = Scheduler(
            self.queue,
            self.store,
            self.clock,
            categories=self.config.horoscope.categories,
            periods=self.config.horoscope.tracked_periods(),
            refresh_interval=self.config.schedule.refresh_interval_hours * 3600,
            max_age=self.config.cache.max_age,
            sleep=sleep,
        )
        self._loaded = False

    # === Lifecycle ===

    def load(self) -> None:
        """Load the persisted cache once."""
        if not self._loaded:
            self.store.load()
            self._loaded = True

    async def start(self, with_scheduler: bool = True) -> None:
        """Load the cache and start the workers (and optionally the scheduler)."""
        self.load()
        self.queue.start()
        if with_scheduler:
            self.scheduler.start(daily_rollover=self.config.schedule.daily_rollover)

    async def stop(self) -> None:
        """Stop the scheduler and the workers."""
        await self.scheduler.stop()
        await self.queue.stop()

    async def drain(self) -> None:
        """Wait until every queued request has finished."""
        await self.queue.join()

    async def __aenter__(self) -> "FetchContext":
        await self.start(with_scheduler=False)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    # === Inbound operations ===

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to FetchSucceeded / FetchFailed / CacheCleared events."""
        return self.events.subscribe(listener)

    def request_refresh(self, categories: Iterable[str], periods: Iterable[str]) -> List[FetchRequest]:
        """Queue every (category, period) combination.

        Unknown categories or periods are logged and left out.

        Args:
            categories: Zodiac sign names
            periods: Period names

        Returns:
            Requests that were queued
        """
        valid_categories = self._filter(categories, normalize_category)
        valid_periods = self._filter(periods, normalize_period)
        return [
            self.queue.enqueue(request.category, request.period)
            for request in expand_requests(valid_categories, valid_periods)
        ]

    @staticmethod
    def _filter(values: Iterable[str], normalize: Callable[[str], str]) -> List[str]:
        valid = []
        for value in values:
            try:
                valid.append(normalize(value))
            except ConfigInvalid as e:
                logger.warning(f"Ignoring refresh request: {e}")
        return valid

    def clear_cache(self) -> None:
        """Empty the cache (memory and file) and announce it."""
        self.store.clear()
        self.events.emit(CacheCleared(cleared_at=self.clock.now()))

    def set_simulated_clock(self, value: Optional[Union[datetime, date]]) -> None:
        """Pin "now" to ``value`` (None returns to real time)."""
        self.clock.set_simulated(value)
        if value is None:
            logger.info("Clock back to real time")
        else:
            logger.info(f"Clock simulated at {self.clock.now():%Y-%m-%d %H:%M}")

    def simulate_midnight(self) -> List[FetchRequest]:
        """Run the midnight rollover right now."""
        self.load()
        return self.scheduler.rollover()

    def get_cached(self, category: str, period: str) -> Optional[str]:
        """Get cached text if still fresh, without fetching."""
        entry = self.store.get_fresh(cache_key(category, period), self.config.cache.max_age(period))
        return entry.value if entry else None


async def run_forever(context: FetchContext) -> None:
    """Run the context with its scheduler until cancelled."""
    await context.start(with_scheduler=True)
    try:
        await asyncio.Event().wait()
    finally:
        await context.stop()

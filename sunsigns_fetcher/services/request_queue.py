"""FIFO request queue drained by a fixed pool of async workers."""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Union

from ..cache.store import CacheStore
from ..config import CacheConfig
from ..errors import MaxRetriesExceeded
from ..fetcher.retry import RetryingFetcher
from ..models.horoscope import FetchFailed, FetchRequest, FetchSucceeded
from .events import EventBus

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class RequestQueue:
    """Ordered backlog of fetch requests served by ``pool_size`` workers.

    Each worker takes the oldest request, serves it from the cache when the
    cached entry is fresh, and otherwise fetches it with retries. After every
    request the worker pauses for ``cooldown`` seconds before taking the next.
    Duplicate requests are not merged.
    """

    def __init__(
        self,
        store: CacheStore,
        fetcher: RetryingFetcher,
        events: EventBus,
        pool_size: int = 2,
        cooldown: float = 5.0,
        max_age: Optional[Callable[[str], timedelta]] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize request queue.

        Args:
            store: Cache store checked before fetching and updated after
            fetcher: Retrying content fetcher
            events: Bus that receives FetchSucceeded / FetchFailed events
            pool_size: Maximum concurrent requests
            cooldown: Seconds a worker waits after each request
            max_age: Freshness window per period
            sleep: Async sleep used for the cooldown (asyncio.sleep by default)
        """
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self.store = store
        self.fetcher = fetcher
        self.events = events
        self.pool_size = pool_size
        self.cooldown = cooldown
        self.max_age = max_age or CacheConfig().max_age
        self._sleep = sleep or asyncio.sleep
        self._queue: "asyncio.Queue[FetchRequest]" = asyncio.Queue()
        self._workers: List[asyncio.Task] = []
        self._in_flight = 0
        self._counters: Dict[str, int] = {
            "enqueued": 0,
            "succeeded": 0,
            "cache_hits": 0,
            "failed": 0,
        }

    # === Producer side ===

    def enqueue(self, category: str, period: str) -> FetchRequest:
        """Append a request to the end of the backlog. Never blocks.

        Args:
            category: Zodiac sign name
            period: Period name

        Returns:
            The queued request
        """
        request = FetchRequest(category=category, period=period)
        self._queue.put_nowait(request)
        self._counters["enqueued"] += 1
        logger.debug(f"Queued {request} ({self._queue.qsize()} pending)")
        return request

    # === Worker pool ===

    def start(self) -> None:
        """Spawn the worker tasks. Must be called from a running event loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker_loop(i), name=f"fetch-worker-{i}")
            for i in range(self.pool_size)
        ]
        logger.info(f"Started {self.pool_size} fetch workers")

    async def stop(self) -> None:
        """Cancel the worker tasks and wait for them to exit."""
        for worker in self._workers:
            worker.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    async def join(self) -> None:
        """Wait until every queued request has succeeded or failed."""
        await self._queue.join()

    @property
    def pending(self) -> int:
        """Requests waiting for a worker."""
        return self._queue.qsize()

    @property
    def in_flight(self) -> int:
        """Requests currently being served."""
        return self._in_flight

    def stats(self) -> Dict[str, int]:
        info = dict(self._counters)
        info["pending"] = self.pending
        info["in_flight"] = self.in_flight
        return info

    async def _worker_loop(self, worker_id: int) -> None:
        while True:
            request = await self._queue.get()
            self._in_flight += 1
            try:
                logger.debug(f"Worker {worker_id} took {request}")
                await self.process(request)
            finally:
                self._in_flight -= 1
                self._queue.task_done()

            if self.cooldown > 0:
                await self._sleep(self.cooldown)

    async def process(self, request: FetchRequest) -> Union[FetchSucceeded, FetchFailed]:
        """Serve one request and emit its result event.

        Never raises: any failure, including cache errors, becomes a
        FetchFailed event.

        Args:
            request: Request to serve

        Returns:
            The emitted event
        """
        try:
            return await self._serve(request)
        except MaxRetriesExceeded as e:
            return self._fail(request, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error serving {request}")
            return self._fail(request, f"{type(e).__name__}: {e}")

    async def _serve(self, request: FetchRequest) -> FetchSucceeded:
        category, period = request.category, request.period
        key = request.key

        cached = self.store.get_fresh(key, self.max_age(period))
        if cached is not None:
            logger.debug(f"[CACHE HIT] Using cached data for {request}")
            self._counters["cache_hits"] += 1
            event = FetchSucceeded(category=category, period=period, text=cached.value, from_cache=True)
            self.events.emit(event)
            return event

        logger.debug(f"[CACHE MISS] Fetching {request} from source")
        text = await self.fetcher.fetch(category, period)

        self.store.put(key, text)
        self._counters["succeeded"] += 1
        logger.info(f"Fetched {request}")
        event = FetchSucceeded(category=category, period=period, text=text, from_cache=False)
        self.events.emit(event)
        return event

    def _fail(self, request: FetchRequest, message: str) -> FetchFailed:
        self._counters["failed"] += 1
        logger.warning(f"Failed to fetch {request}: {message}")
        event = FetchFailed(category=request.category, period=request.period, error_message=message)
        self.events.emit(event)
        return event

"""Fixed-delay retry wrapper around a content extractor."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..errors import ContentUnavailable, MaxRetriesExceeded
from .extractors import ContentExtractor

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class RetryingFetcher:
    """Runs an extractor with a per-attempt timeout and a bounded retry loop.

    The delay between attempts is fixed, not exponential. The extractor is
    blocking I/O, so each attempt runs in a worker thread. A thread cannot be
    interrupted, so after a timeout the fetcher waits for it to finish before
    the next attempt; at most one extractor call per fetch is ever running.
    """

    def __init__(
        self,
        extractor: ContentExtractor,
        max_retries: int = 3,
        retry_delay: float = 300.0,
        timeout: float = 30.0,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize retrying fetcher.

        Args:
            extractor: Source of horoscope text
            max_retries: Total number of attempts per fetch
            retry_delay: Seconds to wait between attempts
            timeout: Seconds allowed per attempt
            sleep: Async sleep used for the delay (asyncio.sleep by default)
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.extractor = extractor
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep or asyncio.sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type(ContentUnavailable),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def fetch(self, category: str, period: str) -> str:
        """Fetch text, retrying on failure.

        Args:
            category: Zodiac sign name
            period: Period name

        Returns:
            Horoscope text from the first successful attempt

        Raises:
            MaxRetriesExceeded: If every attempt failed
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    return await self._attempt(category, period)
        except ContentUnavailable as e:
            logger.error(f"Giving up on {category} {period} after {self.max_retries} attempts")
            raise MaxRetriesExceeded(category, period, self.max_retries, e) from e

    async def _attempt(self, category: str, period: str) -> str:
        """Run one extractor call under the per-attempt timeout.

        Raises:
            ContentUnavailable: On any failure of this attempt
        """
        call = asyncio.ensure_future(
            asyncio.to_thread(self.extractor.extract, category, period)
        )
        try:
            return await asyncio.wait_for(asyncio.shield(call), timeout=self.timeout)
        except ContentUnavailable:
            raise
        except asyncio.TimeoutError as e:
            # The thread keeps running; hold the slot until it returns
            await asyncio.gather(call, return_exceptions=True)
            raise ContentUnavailable(
                category, period, f"timed out after {self.timeout:g}s"
            ) from e
        except Exception as e:
            raise ContentUnavailable(category, period, f"{type(e).__name__}: {e}") from e

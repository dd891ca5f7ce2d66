"""Shared fixtures and fakes for the test suite."""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import List

import pytest

from sunsigns_fetcher.config import Config
from sunsigns_fetcher.errors import ContentUnavailable
from sunsigns_fetcher.fetcher.extractors import ContentExtractor
from sunsigns_fetcher.utils.clock import Clock


class ScriptedExtractor(ContentExtractor):
    """Extractor that fails a set number of times per pair, then succeeds.

    Records every call and the highest number of calls running at once.
    """

    def __init__(self, failures: int = 0, always_fail: bool = False, delay: float = 0.0):
        self.failures = failures
        self.always_fail = always_fail
        self.delay = delay
        self.calls: List[tuple] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "scripted"

    def calls_for(self, category: str, period: str) -> int:
        return sum(1 for call in self.calls if call == (category, period))

    def extract(self, category: str, period: str) -> str:
        with self._lock:
            self.calls.append((category, period))
            attempt = self.calls_for(category, period)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.always_fail or attempt <= self.failures:
                raise ContentUnavailable(category, period, f"scripted failure {attempt}")
            return f"{category.capitalize()} {period} text #{attempt}"
        finally:
            with self._lock:
                self.active -= 1


class RecordingSleep:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo the CLI's logging setup so tests stay independent."""
    yield
    logger = logging.getLogger("sunsigns_fetcher")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock():
    return Clock(datetime(2025, 3, 10, 9, 30))


@pytest.fixture
def cache_file(tmp_path):
    return tmp_path / "cache" / "horoscope_cache.json"


@pytest.fixture
def make_config(cache_file):
    """Build a Config with fast timings and a temporary cache file."""

    def _make(**sections) -> Config:
        data = {
            "paths": {"cache_file": str(cache_file)},
            "horoscope": {"categories": ["taurus", "leo"], "periods": ["daily"]},
            "fetch": {
                "pool_size": 2,
                "max_retries": 3,
                "retry_delay_seconds": 300,
                "request_timeout_seconds": 5,
                "cooldown_seconds": 5,
            },
        }
        for section, values in sections.items():
            data.setdefault(section, {}).update(values)
        return Config(**data)

    return _make


@pytest.fixture
def scripted_extractor():
    """Factory for ScriptedExtractor instances."""
    return ScriptedExtractor


@pytest.fixture
def recording_sleep():
    return RecordingSleep()

"""Tests for the fixed-delay retry wrapper."""

import asyncio
import time

import pytest

from sunsigns_fetcher.errors import ContentUnavailable, MaxRetriesExceeded
from sunsigns_fetcher.fetcher.extractors import ContentExtractor
from sunsigns_fetcher.fetcher.retry import RetryingFetcher


class SlowExtractor(ContentExtractor):
    name = "slow"

    def extract(self, category, period):
        time.sleep(0.3)
        return "too late"


class BrokenExtractor(ContentExtractor):
    name = "broken"

    def __init__(self):
        self.calls = 0

    def extract(self, category, period):
        self.calls += 1
        raise RuntimeError("parser exploded")


class TestRetryingFetcher:
    """Tests for RetryingFetcher.fetch."""

    def test_success_on_first_attempt(self, scripted_extractor, recording_sleep):
        extractor = scripted_extractor()
        fetcher = RetryingFetcher(extractor, max_retries=3, retry_delay=300, sleep=recording_sleep)

        text = asyncio.run(fetcher.fetch("taurus", "daily"))

        assert text == "Taurus daily text #1"
        assert len(extractor.calls) == 1
        assert recording_sleep.delays == []

    @pytest.mark.parametrize("failures", [1, 2])
    def test_k_failures_then_success(self, scripted_extractor, recording_sleep, failures):
        extractor = scripted_extractor(failures=failures)
        fetcher = RetryingFetcher(extractor, max_retries=3, retry_delay=300, sleep=recording_sleep)

        text = asyncio.run(fetcher.fetch("leo", "weekly"))

        assert text == f"Leo weekly text #{failures + 1}"
        assert len(extractor.calls) == failures + 1
        assert recording_sleep.delays == [300] * failures

    def test_always_failing_raises_max_retries(self, scripted_extractor, recording_sleep):
        extractor = scripted_extractor(always_fail=True)
        fetcher = RetryingFetcher(extractor, max_retries=3, retry_delay=60, sleep=recording_sleep)

        with pytest.raises(MaxRetriesExceeded) as exc_info:
            asyncio.run(fetcher.fetch("taurus", "daily"))

        error = exc_info.value
        assert error.attempts == 3
        assert isinstance(error.last_error, ContentUnavailable)
        assert "scripted failure 3" in str(error.last_error)
        assert len(extractor.calls) == 3
        # No delay after the final attempt
        assert recording_sleep.delays == [60, 60]

    def test_attempt_timeout_counts_as_failure(self, recording_sleep):
        fetcher = RetryingFetcher(SlowExtractor(), max_retries=1, timeout=0.05, sleep=recording_sleep)

        with pytest.raises(MaxRetriesExceeded) as exc_info:
            asyncio.run(fetcher.fetch("taurus", "daily"))

        assert "timed out" in exc_info.value.last_error.reason

    def test_unexpected_errors_are_retried(self, recording_sleep):
        extractor = BrokenExtractor()
        fetcher = RetryingFetcher(extractor, max_retries=2, retry_delay=1, sleep=recording_sleep)

        with pytest.raises(MaxRetriesExceeded) as exc_info:
            asyncio.run(fetcher.fetch("taurus", "daily"))

        assert extractor.calls == 2
        assert "RuntimeError: parser exploded" in exc_info.value.last_error.reason

    def test_requires_at_least_one_attempt(self, scripted_extractor):
        with pytest.raises(ValueError):
            RetryingFetcher(scripted_extractor(), max_retries=0)

    def test_timed_out_call_finishes_before_next_attempt(self, scripted_extractor, recording_sleep):
        extractor = scripted_extractor(delay=0.2)
        fetcher = RetryingFetcher(
            extractor, max_retries=3, retry_delay=0, timeout=0.02, sleep=recording_sleep
        )

        with pytest.raises(MaxRetriesExceeded):
            asyncio.run(fetcher.fetch("taurus", "daily"))

        assert len(extractor.calls) == 3
        assert extractor.max_active == 1
        assert extractor.active == 0

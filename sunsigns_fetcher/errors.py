"""Error taxonomy for SunSigns Fetcher.

- ContentUnavailable: a single fetch attempt failed; retryable
- MaxRetriesExceeded: every attempt failed; terminal for that request
- CacheIOError: the cache file could not be written or removed
- ConfigInvalid: unknown category, period, provider or a bad config file
"""

from typing import Optional


class SunSignsError(Exception):
    """Base class for all SunSigns Fetcher errors."""


class ContentUnavailable(SunSignsError):
    """Raised when content for a category/period could not be obtained."""

    def __init__(self, category: str, period: str, reason: str):
        self.category = category
        self.period = period
        self.reason = reason
        super().__init__(f"No content for {category} {period}: {reason}")


class MaxRetriesExceeded(SunSignsError):
    """Raised after the configured number of attempts all failed."""

    def __init__(
        self,
        category: str,
        period: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        self.category = category
        self.period = period
        self.attempts = attempts
        self.last_error = last_error
        message = f"Max retries reached for {category} {period} after {attempts} attempts"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)


class CacheIOError(SunSignsError):
    """Raised when the cache file cannot be persisted or deleted."""


class ConfigInvalid(SunSignsError, ValueError):
    """Raised for invalid configuration or unrecognized category/period values."""

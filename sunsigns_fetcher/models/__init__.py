"""Data models for SunSigns Fetcher."""

from .horoscope import (
    ZODIAC_SIGNS,
    PERIODS,
    Period,
    CacheEntry,
    FetchRequest,
    FetchSucceeded,
    FetchFailed,
    CacheCleared,
    cache_key,
    split_cache_key,
    expand_requests,
    normalize_category,
    normalize_period,
)

__all__ = [
    "ZODIAC_SIGNS",
    "PERIODS",
    "Period",
    "CacheEntry",
    "FetchRequest",
    "FetchSucceeded",
    "FetchFailed",
    "CacheCleared",
    "cache_key",
    "split_cache_key",
    "expand_requests",
    "normalize_category",
    "normalize_period",
]

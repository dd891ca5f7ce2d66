"""Content fetching for SunSigns Fetcher.

Provides horoscope text from multiple sources:
- sunsigns.com HTML pages
- horoscope-app-api JSON endpoints

wrapped in a fixed-delay retry loop.
"""

from .extractors import (
    ContentExtractor,
    SunSignsExtractor,
    HoroscopeApiExtractor,
    get_extractor,
)
from .retry import RetryingFetcher

__all__ = [
    "ContentExtractor",
    "SunSignsExtractor",
    "HoroscopeApiExtractor",
    "get_extractor",
    "RetryingFetcher",
]

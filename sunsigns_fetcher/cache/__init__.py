"""JSON file cache for horoscope text.

Provides persistent caching with:
- Load once at startup, tolerant of missing or corrupt files
- Write-through persistence on every update
- Midnight rotation of "tomorrow" into "daily"
"""

from .store import CacheStore

__all__ = [
    "CacheStore",
]

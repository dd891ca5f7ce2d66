"""Persistent horoscope cache.

The whole map lives in memory and is written through to a single JSON file
after every change:

    {
        "taurus:daily": {"value": "...", "fetchedAt": "2025-01-01T08:00:00"},
        ...
    }
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..errors import CacheIOError
from ..models.horoscope import CacheEntry
from ..utils.clock import Clock

logger = logging.getLogger(__name__)


class CacheStore:
    """Key -> CacheEntry map with load-at-start and write-through persistence."""

    def __init__(self, cache_path: str, clock: Optional[Clock] = None):
        """Initialize cache store.

        Args:
            cache_path: Path to the JSON cache file
            clock: Clock used to timestamp entries and judge freshness
        """
        self.cache_path = Path(cache_path).expanduser()
        self.clock = clock or Clock()
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    # === Loading and saving ===

    def load(self) -> Dict[str, CacheEntry]:
        """Read the persisted map into memory.

        A missing file gives an empty cache. An unreadable or malformed file is
        logged and also gives an empty cache.

        Returns:
            Copy of the loaded map
        """
        entries = self._read_file()
        with self._lock:
            self._entries = entries
        logger.info(f"Loaded {len(entries)} cache entries from {self.cache_path}")
        return dict(entries)

    def _read_file(self) -> Dict[str, CacheEntry]:
        if not self.cache_path.exists():
            logger.info(f"Cache file {self.cache_path} does not exist, starting empty")
            return {}

        try:
            with open(self.cache_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read cache file {self.cache_path}: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.warning(f"Cache file {self.cache_path} does not hold an object, ignoring it")
            return {}

        try:
            return {str(key): CacheEntry.model_validate(data) for key, data in raw.items()}
        except ValidationError as e:
            logger.warning(f"Malformed entry in cache file {self.cache_path}: {e}")
            return {}

    def save(self) -> None:
        """Persist the current map. Failures are logged, never raised."""
        with self._lock:
            self._persist_locked()

    def _persist_locked(self) -> None:
        try:
            self._write_file({key: entry.to_dict() for key, entry in self._entries.items()})
        except CacheIOError as e:
            logger.error(f"{e}; continuing with in-memory cache only")

    def _write_file(self, data: Dict[str, Any]) -> None:
        """Atomically replace the cache file with ``data``.

        Raises:
            CacheIOError: If the file could not be written
        """
        tmp_name = None
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.cache_path.parent,
                prefix=".horoscope_cache.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.cache_path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise CacheIOError(f"Error saving cache to {self.cache_path}: {e}") from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    # === Lookups ===

    def get(self, key: str) -> Optional[CacheEntry]:
        """Look up an entry without side effects."""
        return self._entries.get(key)

    def is_fresh(self, entry: CacheEntry, max_age: timedelta) -> bool:
        """Check whether an entry is strictly younger than ``max_age``."""
        return entry.is_fresh(self.clock.now(), max_age)

    def get_fresh(self, key: str, max_age: timedelta) -> Optional[CacheEntry]:
        """Return the entry for ``key`` only if it is still fresh."""
        entry = self.get(key)
        if entry is not None and self.is_fresh(entry, max_age):
            return entry
        return None

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def snapshot(self) -> Dict[str, CacheEntry]:
        """Copy of the in-memory map."""
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # === Mutations ===

    def put(self, key: str, value: str) -> CacheEntry:
        """Insert or overwrite an entry and persist the whole map.

        Args:
            key: Composite cache key
            value: Horoscope text

        Returns:
            The stored entry
        """
        entry = CacheEntry(value=value, fetched_at=self.clock.now())
        with self._lock:
            self._entries[key] = entry
            self._persist_locked()
        logger.debug(f"Cache updated for {key}")
        return entry

    def rotate(
        self,
        source_key: str,
        dest_key: str,
        fetched_at: Optional[datetime] = None,
    ) -> bool:
        """Move the entry under ``source_key`` to ``dest_key``.

        The moved entry is stamped with the rollover time, since from this
        moment on it is the current value of the destination period.

        Args:
            source_key: Key to move from (e.g. ``taurus:tomorrow``)
            dest_key: Key to move to (e.g. ``taurus:daily``)
            fetched_at: Timestamp for the moved entry (defaults to clock.now())

        Returns:
            True if an entry was moved, False if there was nothing to move
        """
        with self._lock:
            entry = self._entries.pop(source_key, None)
            if entry is None:
                return False
            self._entries[dest_key] = CacheEntry(
                value=entry.value,
                fetched_at=fetched_at or self.clock.now(),
            )
            self._persist_locked()
        logger.info(f"Rotated {source_key} into {dest_key}")
        return True

    def clear(self) -> None:
        """Empty the cache and delete the persisted file."""
        with self._lock:
            self._entries = {}
            try:
                self.cache_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error(f"Error deleting cache file {self.cache_path}: {e}")
                # Fall back to overwriting it with an empty map
                self._persist_locked()
        logger.info("Cache cleared")

    # === Introspection ===

    def stats(self, max_age: Optional[timedelta] = None) -> Dict[str, Any]:
        """Get cache status information.

        Args:
            max_age: Freshness window used for the fresh/stale split

        Returns:
            Dict with cache info
        """
        now = self.clock.now()
        entries = self.snapshot()
        info: Dict[str, Any] = {
            "cache_path": str(self.cache_path),
            "file_exists": self.cache_path.exists(),
            "file_size_bytes": 0,
            "entries": len(entries),
            "fresh": None,
            "stale": None,
            "oldest": None,
            "newest": None,
        }

        if info["file_exists"]:
            try:
                info["file_size_bytes"] = self.cache_path.stat().st_size
            except OSError:
                pass

        if entries:
            times = [e.fetched_at for e in entries.values()]
            info["oldest"] = min(times)
            info["newest"] = max(times)

        if max_age is not None:
            fresh = sum(1 for e in entries.values() if e.is_fresh(now, max_age))
            info["fresh"] = fresh
            info["stale"] = len(entries) - fresh

        return info

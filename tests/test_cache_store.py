"""Tests for the JSON cache store."""

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from sunsigns_fetcher.cache.store import CacheStore
from sunsigns_fetcher.models.horoscope import CacheEntry
from sunsigns_fetcher.utils.clock import Clock


@pytest.fixture
def store(cache_file, clock):
    return CacheStore(str(cache_file), clock=clock)


class TestLoad:
    """Tests for loading the persisted map."""

    def test_missing_file_gives_empty_cache(self, store):
        assert store.load() == {}
        assert len(store) == 0

    def test_corrupt_file_gives_empty_cache(self, store, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("{not json")

        assert store.load() == {}

    def test_non_object_file_gives_empty_cache(self, store, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("[1, 2, 3]")

        assert store.load() == {}

    def test_malformed_entry_gives_empty_cache(self, store, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(json.dumps({"taurus:daily": {"value": "x"}}))

        assert store.load() == {}

    def test_aware_timestamp_becomes_local(self, store, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(
            json.dumps({"leo:daily": {"value": "Roar", "fetchedAt": "2025-03-10T08:00:00+00:00"}})
        )

        entry = store.load()["leo:daily"]

        expected = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert entry.fetched_at == expected
        assert entry.fetched_at.tzinfo is None

    def test_loads_persisted_entries(self, store, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(
            json.dumps({"leo:weekly": {"value": "Roar", "fetchedAt": "2025-03-09T08:00:00"}})
        )

        loaded = store.load()

        assert loaded["leo:weekly"].value == "Roar"
        assert loaded["leo:weekly"].fetched_at == datetime(2025, 3, 9, 8, 0)


class TestPut:
    """Tests for write-through updates."""

    def test_put_persists_immediately(self, store, cache_file, clock):
        store.put("taurus:daily", "Stay grounded.")

        data = json.loads(cache_file.read_text())
        assert data == {
            "taurus:daily": {
                "value": "Stay grounded.",
                "fetchedAt": clock.now().isoformat(),
            }
        }

    def test_put_overwrites(self, store):
        store.put("taurus:daily", "old")
        store.put("taurus:daily", "new")

        assert store.get("taurus:daily").value == "new"
        assert len(store) == 1

    def test_get_has_no_side_effects(self, store, cache_file):
        assert store.get("aries:daily") is None
        assert not cache_file.exists()

    def test_persist_failure_keeps_memory_updated(self, tmp_path, clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = CacheStore(str(blocker / "cache.json"), clock=clock)

        entry = store.put("taurus:daily", "still here")

        assert store.get("taurus:daily") == entry

    def test_concurrent_puts_lose_no_keys(self, store, cache_file):
        keys = [f"sign{i}:daily" for i in range(20)]
        threads = [threading.Thread(target=store.put, args=(key, key)) for key in keys]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        data = json.loads(cache_file.read_text())
        assert sorted(data) == sorted(keys)


class TestRoundTrip:
    """save then load reproduces the same map."""

    def test_save_load_round_trip(self, store, cache_file, clock):
        store.put("taurus:daily", "One")
        clock.set_simulated(datetime(2025, 3, 10, 9, 30, 15, 123456))
        store.put("leo:monthly", "Two with \"quotes\" and üñíçødé")
        store.save()
        before = store.snapshot()

        reloaded = CacheStore(str(cache_file), clock=clock)
        after = reloaded.load()

        assert after == before


class TestFreshness:
    """Freshness is strict: an entry exactly max_age old is stale."""

    def test_younger_than_window_is_fresh(self, store, clock):
        entry = store.put("taurus:daily", "x")
        clock.set_simulated(entry.fetched_at + timedelta(hours=6) - timedelta(microseconds=1))

        assert store.is_fresh(entry, timedelta(hours=6))

    def test_exact_boundary_is_stale(self, store, clock):
        entry = store.put("taurus:daily", "x")
        clock.set_simulated(entry.fetched_at + timedelta(hours=6))

        assert not store.is_fresh(entry, timedelta(hours=6))

    def test_older_than_window_is_stale(self, store, clock):
        entry = store.put("taurus:daily", "x")
        clock.set_simulated(entry.fetched_at + timedelta(days=1))

        assert not store.is_fresh(entry, timedelta(hours=6))
        assert store.get_fresh("taurus:daily", timedelta(hours=6)) is None

    def test_entry_freshness_helper(self):
        entry = CacheEntry(value="x", fetched_at=datetime(2025, 1, 1, 0, 0))

        assert entry.is_fresh(datetime(2025, 1, 1, 0, 59), timedelta(hours=1))
        assert not entry.is_fresh(datetime(2025, 1, 1, 1, 0), timedelta(hours=1))


class TestRotate:
    """Tests for moving tomorrow's entry into the daily slot."""

    def test_rotate_moves_entry(self, store, cache_file):
        store.put("taurus:tomorrow", "Tomorrow's text")
        store.put("taurus:daily", "Today's text")

        assert store.rotate("taurus:tomorrow", "taurus:daily") is True

        assert store.get("taurus:daily").value == "Tomorrow's text"
        assert store.get("taurus:tomorrow") is None
        data = json.loads(cache_file.read_text())
        assert "taurus:tomorrow" not in data
        assert data["taurus:daily"]["value"] == "Tomorrow's text"

    def test_rotate_restamps_entry(self, store, clock):
        store.put("taurus:tomorrow", "text")
        clock.set_simulated(datetime(2025, 3, 11, 0, 0))

        store.rotate("taurus:tomorrow", "taurus:daily")

        assert store.get("taurus:daily").fetched_at == datetime(2025, 3, 11, 0, 0)

    def test_rotate_uses_given_timestamp(self, store):
        store.put("taurus:tomorrow", "text")

        store.rotate("taurus:tomorrow", "taurus:daily", fetched_at=datetime(2025, 3, 11, 0, 0))

        assert store.get("taurus:daily").fetched_at == datetime(2025, 3, 11, 0, 0)

    def test_rotate_without_source_is_noop(self, store, cache_file):
        assert store.rotate("taurus:tomorrow", "taurus:daily") is False
        assert store.get("taurus:daily") is None
        assert not cache_file.exists()

    def test_rotate_without_source_keeps_dest(self, store):
        store.put("taurus:daily", "Today's text")

        store.rotate("taurus:tomorrow", "taurus:daily")

        assert store.get("taurus:daily").value == "Today's text"


class TestClearAndStats:
    """Tests for clearing and cache statistics."""

    def test_clear_removes_file_and_entries(self, store, cache_file):
        store.put("taurus:daily", "x")
        assert cache_file.exists()

        store.clear()

        assert len(store) == 0
        assert not cache_file.exists()
        assert CacheStore(str(cache_file)).load() == {}

    def test_clear_without_file(self, store):
        store.clear()
        assert len(store) == 0

    def test_stats(self, store, clock):
        store.put("taurus:daily", "x")
        clock.set_simulated(clock.now() + timedelta(hours=7))
        store.put("leo:daily", "y")

        stats = store.stats(max_age=timedelta(hours=6))

        assert stats["entries"] == 2
        assert stats["fresh"] == 1
        assert stats["stale"] == 1
        assert stats["file_exists"] is True
        assert stats["file_size_bytes"] > 0

    def test_default_clock_is_real_time(self, cache_file):
        store = CacheStore(str(cache_file))
        entry = store.put("aries:daily", "x")

        assert isinstance(store.clock, Clock)
        assert abs((datetime.now() - entry.fetched_at).total_seconds()) < 60

"""Tests for CLI error messages."""

import requests

from sunsigns_fetcher.errors import (
    CacheIOError,
    ConfigInvalid,
    ContentUnavailable,
    MaxRetriesExceeded,
)
from sunsigns_fetcher.utils.error_handling import create_user_friendly_error


class TestCreateUserFriendlyError:
    def test_domain_errors(self):
        unavailable = ContentUnavailable("leo", "daily", "page changed")

        assert create_user_friendly_error(ConfigInvalid("bad sign")) == "Configuration problem: bad sign"
        assert create_user_friendly_error(unavailable) == (
            "Horoscope unavailable for leo daily: page changed"
        )
        assert create_user_friendly_error(
            MaxRetriesExceeded("leo", "daily", 3, unavailable)
        ) == "Could not fetch leo daily after 3 attempts"
        assert create_user_friendly_error(CacheIOError("disk full")).startswith("Cache file error")

    def test_network_errors(self):
        assert "did not respond" in create_user_friendly_error(requests.Timeout())
        assert "Could not connect" in create_user_friendly_error(requests.ConnectionError())

    def test_file_errors(self):
        error = PermissionError(13, "Permission denied", "/tmp/cache.json")

        assert create_user_friendly_error(error) == "Permission denied: /tmp/cache.json"

    def test_fallback(self):
        assert create_user_friendly_error(RuntimeError("boom")) == "boom"
        assert create_user_friendly_error(RuntimeError()) == "RuntimeError"

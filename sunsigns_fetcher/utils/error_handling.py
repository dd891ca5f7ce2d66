"""User-facing error messages for the CLI."""

import requests

from ..errors import (
    CacheIOError,
    ConfigInvalid,
    ContentUnavailable,
    MaxRetriesExceeded,
)


def create_user_friendly_error(error: BaseException) -> str:
    """Turn an exception into a one-line message suitable for the terminal.

    Args:
        error: Exception raised by a command

    Returns:
        Short human-readable description
    """
    if isinstance(error, ConfigInvalid):
        return f"Configuration problem: {error}"
    if isinstance(error, MaxRetriesExceeded):
        return (
            f"Could not fetch {error.category} {error.period} "
            f"after {error.attempts} attempts"
        )
    if isinstance(error, ContentUnavailable):
        return f"Horoscope unavailable for {error.category} {error.period}: {error.reason}"
    if isinstance(error, CacheIOError):
        return f"Cache file error: {error}"
    if isinstance(error, requests.Timeout):
        return "The horoscope source did not respond in time"
    if isinstance(error, requests.ConnectionError):
        return "Could not connect to the horoscope source"
    if isinstance(error, PermissionError):
        return f"Permission denied: {error.filename or error}"
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error.filename or error}"
    return str(error) or error.__class__.__name__

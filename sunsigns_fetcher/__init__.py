"""SunSigns Fetcher - cached, queued horoscope fetching."""

__version__ = "0.3.0"

"""Horoscope data models for SunSigns Fetcher."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import ConfigInvalid
from ..utils.clock import to_local_naive


ZODIAC_SIGNS: Tuple[str, ...] = (
    "aries",
    "taurus",
    "gemini",
    "cancer",
    "leo",
    "virgo",
    "libra",
    "scorpio",
    "sagittarius",
    "capricorn",
    "aquarius",
    "pisces",
)


class Period(str, Enum):
    """Time scope of a horoscope text."""

    DAILY = "daily"
    TOMORROW = "tomorrow"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


PERIODS: Tuple[str, ...] = tuple(p.value for p in Period)


def normalize_category(category: str) -> str:
    """Validate and normalize a zodiac sign name.

    Args:
        category: Sign name in any case

    Returns:
        Lowercase sign name

    Raises:
        ConfigInvalid: If the sign is not one of the twelve zodiac signs
    """
    value = str(category).strip().lower()
    if value not in ZODIAC_SIGNS:
        raise ConfigInvalid(
            f"Unknown category: {category}. Must be one of: {', '.join(ZODIAC_SIGNS)}"
        )
    return value


def normalize_period(period: str) -> str:
    """Validate and normalize a period name.

    Args:
        period: Period name or Period member

    Returns:
        Lowercase period value

    Raises:
        ConfigInvalid: If the period is not recognized
    """
    if isinstance(period, Period):
        return period.value
    value = str(period).strip().lower()
    if value not in PERIODS:
        raise ConfigInvalid(
            f"Unknown period: {period}. Must be one of: {', '.join(PERIODS)}"
        )
    return value


def cache_key(category: str, period: str) -> str:
    """Build the composite cache key for a category/period pair."""
    if isinstance(period, Period):
        period = period.value
    return f"{category}:{period}"


def split_cache_key(key: str) -> Tuple[str, str]:
    """Split a composite cache key back into (category, period)."""
    category, _, period = key.partition(":")
    return category, period


class CacheEntry(BaseModel):
    """A cached horoscope text and the moment it was fetched."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    value: str
    fetched_at: datetime = Field(alias="fetchedAt")

    @field_validator("fetched_at")
    @classmethod
    def local_time(cls, v: datetime) -> datetime:
        """Store timestamps as naive local time."""
        return to_local_naive(v)

    def age(self, now: datetime) -> timedelta:
        """Age of the entry relative to ``now``."""
        return now - self.fetched_at

    def is_fresh(self, now: datetime, max_age: timedelta) -> bool:
        """Fresh iff strictly younger than ``max_age``."""
        return now - self.fetched_at < max_age

    def to_dict(self) -> dict:
        """Serialize to the persisted ``{value, fetchedAt}`` form."""
        return {"value": self.value, "fetchedAt": self.fetched_at.isoformat()}


class FetchRequest(BaseModel):
    """A single (category, period) fetch request."""

    model_config = ConfigDict(frozen=True)

    category: str
    period: str

    @property
    def key(self) -> str:
        return cache_key(self.category, self.period)

    def __str__(self) -> str:
        return f"{self.category}/{self.period}"


def expand_requests(categories: Iterable[str], periods: Iterable[str]) -> List[FetchRequest]:
    """Cartesian product of categories and periods, in the given order."""
    periods = list(periods)
    return [
        FetchRequest(category=category, period=period)
        for category in categories
        for period in periods
    ]


# === Outbound events ===


class FetchSucceeded(BaseModel):
    """Horoscope text is available, either fetched or served from cache."""

    category: str
    period: str
    text: str
    from_cache: bool = False


class FetchFailed(BaseModel):
    """Every attempt for a request failed."""

    category: str
    period: str
    error_message: str


class CacheCleared(BaseModel):
    """The cache was emptied."""

    cleared_at: Optional[datetime] = None

"""Configuration management for SunSigns Fetcher."""

import os
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigInvalid
from .models.horoscope import Period, normalize_category, normalize_period


def default_cache_path() -> str:
    """Get default cache file path.

    Returns:
        Path to the horoscope cache JSON file
    """
    if os.name == "nt":
        cache_base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        cache_base = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))

    return str(cache_base / "sunsigns-fetcher" / "horoscope_cache.json")


class PathsConfig(BaseModel):
    """Configuration for file paths."""

    cache_file: str = Field(default_factory=default_cache_path)

    @field_validator("cache_file")
    @classmethod
    def expand_path(cls, v):
        """Expand user paths and environment variables."""
        return os.path.expanduser(os.path.expandvars(v))


class HoroscopeConfig(BaseModel):
    """Which signs and periods to keep cached."""

    categories: List[str] = Field(default=["taurus"], min_length=1)
    periods: List[str] = Field(default=["daily"], min_length=1)

    @field_validator("categories")
    @classmethod
    def check_categories(cls, v):
        """Lowercase and validate zodiac sign names."""
        return [normalize_category(c) for c in v]

    @field_validator("periods")
    @classmethod
    def check_periods(cls, v):
        """Lowercase and validate period names."""
        return [normalize_period(p) for p in v]

    def tracked_periods(self) -> List[str]:
        """Configured periods plus ``tomorrow`` whenever ``daily`` is tracked.

        The midnight rollover promotes tomorrow's text to daily, so it has to
        be cached ahead of time.
        """
        periods = list(self.periods)
        if Period.DAILY.value in periods and Period.TOMORROW.value not in periods:
            periods.append(Period.TOMORROW.value)
        return periods


class FetchConfig(BaseModel):
    """Worker pool and retry settings."""

    pool_size: int = Field(default=2, ge=1, le=16)
    max_retries: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Total fetch attempts per request",
    )
    retry_delay_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Fixed delay between attempts of one request",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    cooldown_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Pause a worker takes after each request before the next one",
    )


class CacheConfig(BaseModel):
    """Freshness window settings."""

    duration_hours: float = Field(
        default=6.0,
        gt=0,
        description="Entries younger than this are served without fetching",
    )
    period_hours: Dict[str, float] = Field(
        default_factory=dict,
        description="Per-period overrides of duration_hours",
    )

    @field_validator("period_hours")
    @classmethod
    def check_period_hours(cls, v):
        """Validate period names and durations."""
        checked = {}
        for period, hours in v.items():
            if hours <= 0:
                raise ValueError(f"period_hours[{period}] must be positive")
            checked[normalize_period(period)] = hours
        return checked

    def max_age(self, period: str) -> timedelta:
        """Freshness window for a period."""
        if isinstance(period, Period):
            period = period.value
        return timedelta(hours=self.period_hours.get(period, self.duration_hours))


class ScheduleConfig(BaseModel):
    """Background schedule settings."""

    refresh_interval_hours: float = Field(default=12.0, gt=0)
    daily_rollover: bool = Field(
        default=True,
        description="Promote tomorrow's text to daily at local midnight",
    )


class SourceConfig(BaseModel):
    """Where horoscope text comes from."""

    provider: str = Field(
        default="sunsigns",
        pattern="^(sunsigns|horoscope-api)$",
        description="Content source: sunsigns (HTML pages) or horoscope-api (JSON API)",
    )
    base_url: str = Field(default="https://www.sunsigns.com/horoscopes")
    api_url: str = Field(default="https://horoscope-app-api.vercel.app/api/v1/get-horoscope")
    content_selector: str = Field(
        default="div.horoscope-content p",
        description="CSS selector of the horoscope text on sunsigns pages",
    )
    user_agent: str = Field(default="Mozilla/5.0 (compatible; sunsigns-fetcher)")


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        return str(v).upper()


class Config(BaseModel):
    """Main configuration class."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    horoscope: HoroscopeConfig = Field(default_factory=HoroscopeConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ConfigManager:
    """Manages configuration loading and access."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, searches standard locations.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Config] = None

    def _find_config_file(self) -> str:
        """Find configuration file in standard locations."""
        search_paths = [
            os.path.join(os.path.dirname(__file__), "config.toml"),
            os.path.expanduser("~/.config/sunsigns-fetcher/config.toml"),
            "config.toml",
            "sunsigns_fetcher.toml",
        ]

        for path in search_paths:
            if os.path.exists(path):
                return path

        # Return default path even if it doesn't exist
        return search_paths[0]

    @property
    def config(self) -> Config:
        """Get configuration, loading if necessary."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not os.path.exists(self.config_path):
            # Return default configuration if file doesn't exist
            return Config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config_data = toml.load(f)
            return Config(**config_data)
        except (toml.TomlDecodeError, ValidationError, ValueError) as e:
            raise ConfigInvalid(f"Invalid configuration file {self.config_path}: {e}") from e

    def reload(self):
        """Reload configuration."""
        self._config = None


# Global configuration manager instance
config_manager = ConfigManager()

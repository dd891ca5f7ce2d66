"""Content extractors: turn a (category, period) pair into horoscope text.

Two sources are supported:
- sunsigns: HTML pages from https://www.sunsigns.com/horoscopes
- horoscope-api: JSON from https://horoscope-app-api.vercel.app
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional

import requests
from bs4 import BeautifulSoup

from ..config import SourceConfig
from ..errors import ConfigInvalid, ContentUnavailable

logger = logging.getLogger(__name__)


def clean_text(text: str) -> str:
    """Collapse whitespace runs into single spaces."""
    return re.sub(r"\s+", " ", text).strip()


class ContentExtractor(ABC):
    """Abstract source of horoscope text."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the name of this source."""
        pass

    @abstractmethod
    def extract(self, category: str, period: str) -> str:
        """Fetch the text for a category and period.

        Args:
            category: Zodiac sign name
            period: Period name

        Returns:
            Horoscope text

        Raises:
            ContentUnavailable: On network errors, timeouts, bad responses or
                when the expected content is missing
        """
        pass


class HttpExtractor(ContentExtractor):
    """Shared HTTP plumbing for the requests-based extractors."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize HTTP extractor.

        Args:
            timeout: Socket timeout per request in seconds
            user_agent: User-Agent header to send
            session: Optional requests session (a new one by default)
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        if user_agent:
            self.session.headers["User-Agent"] = user_agent

    def _get(self, url: str, category: str, period: str, **kwargs) -> requests.Response:
        logger.debug(f"Fetching {category} {period} from {url}")
        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.Timeout as e:
            raise ContentUnavailable(category, period, f"request timed out: {e}") from e
        except requests.RequestException as e:
            raise ContentUnavailable(category, period, str(e)) from e


class SunSignsExtractor(HttpExtractor):
    """Scrapes horoscope text from sunsigns.com pages."""

    def __init__(
        self,
        base_url: str = "https://www.sunsigns.com/horoscopes",
        content_selector: str = "div.horoscope-content p",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.content_selector = content_selector

    @property
    def name(self) -> str:
        return "sunsigns"

    def page_url(self, category: str, period: str, today: Optional[date] = None) -> str:
        """Build the page URL for a category and period.

        Args:
            category: Zodiac sign name
            period: Period name
            today: Date used for the yearly page (defaults to today)

        Returns:
            Absolute page URL
        """
        if period == "tomorrow":
            return f"{self.base_url}/daily/{category}/tomorrow"
        if period == "yearly":
            year = (today or date.today()).year
            return f"{self.base_url}/yearly/{year}/{category}"
        if period in ("daily", "weekly", "monthly"):
            return f"{self.base_url}/{period}/{category}"
        raise ContentUnavailable(category, period, "unsupported period")

    def extract(self, category: str, period: str) -> str:
        url = self.page_url(category, period)
        response = self._get(url, category, period)
        return self.parse_page(response.text, category, period)

    def parse_page(self, html: str, category: str, period: str) -> str:
        """Pull the horoscope paragraphs out of a page.

        Raises:
            ContentUnavailable: If the content region is missing or empty
        """
        soup = BeautifulSoup(html, "html.parser")
        paragraphs = [clean_text(node.get_text(" ")) for node in soup.select(self.content_selector)]
        text = "\n\n".join(p for p in paragraphs if p)
        if not text:
            raise ContentUnavailable(
                category,
                period,
                f"content region '{self.content_selector}' not found",
            )
        return text


class HoroscopeApiExtractor(HttpExtractor):
    """Reads horoscope text from the horoscope-app-api JSON endpoints."""

    def __init__(
        self,
        api_url: str = "https://horoscope-app-api.vercel.app/api/v1/get-horoscope",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.api_url = api_url.rstrip("/")

    @property
    def name(self) -> str:
        return "horoscope-api"

    def endpoint(self, category: str, period: str) -> tuple:
        """Get (url, params) for a category and period."""
        sign = category.capitalize()
        if period == "daily":
            return f"{self.api_url}/daily", {"sign": sign, "day": "today"}
        if period == "tomorrow":
            return f"{self.api_url}/daily", {"sign": sign, "day": "tomorrow"}
        if period in ("weekly", "monthly"):
            return f"{self.api_url}/{period}", {"sign": sign}
        raise ContentUnavailable(category, period, "not offered by the horoscope API")

    def extract(self, category: str, period: str) -> str:
        url, params = self.endpoint(category, period)
        response = self._get(url, category, period, params=params)
        try:
            payload = response.json()
        except ValueError as e:
            raise ContentUnavailable(category, period, f"invalid JSON: {e}") from e
        return self.parse_payload(payload, category, period)

    def parse_payload(self, payload: Dict[str, Any], category: str, period: str) -> str:
        """Extract ``data.horoscope_data`` from an API response.

        Raises:
            ContentUnavailable: If the API reported failure or sent no text
        """
        if not isinstance(payload, dict) or not payload.get("success"):
            raise ContentUnavailable(category, period, "API returned unsuccessful response")

        data = payload.get("data") or {}
        text = data.get("horoscope_data") if isinstance(data, dict) else None
        if not text or not str(text).strip():
            raise ContentUnavailable(category, period, "API response has no horoscope text")
        return clean_text(str(text))


def get_extractor(provider: str, settings: Optional[SourceConfig] = None, timeout: float = 30.0) -> ContentExtractor:
    """Create the extractor for a configured provider.

    Args:
        provider: "sunsigns" or "horoscope-api"
        settings: Source configuration (defaults used if None)
        timeout: Socket timeout per request in seconds

    Returns:
        ContentExtractor instance

    Raises:
        ConfigInvalid: If the provider is unknown
    """
    settings = settings or SourceConfig()

    if provider == "sunsigns":
        return SunSignsExtractor(
            base_url=settings.base_url,
            content_selector=settings.content_selector,
            timeout=timeout,
            user_agent=settings.user_agent,
        )
    elif provider == "horoscope-api":
        return HoroscopeApiExtractor(
            api_url=settings.api_url,
            timeout=timeout,
            user_agent=settings.user_agent,
        )
    else:
        raise ConfigInvalid(
            f"Invalid content provider: {provider}. Must be one of: sunsigns, horoscope-api"
        )

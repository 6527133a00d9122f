"""
Yojana RAG — Base Scraper
Abstract base class for all scheme sources with shared utilities:
  - Async HTTP fetching with explicit timeouts
  - Structured API first, HTML markup scraping second
  - Mapping of portal payloads onto raw scheme dicts
  - Slug / id generation
"""

import re
from abc import ABC
from typing import Any, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from yojana.utils.logger import logger


def generate_slug(name: str) -> str:
    """Generate a URL-safe slug from scheme name."""
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"[\s]+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug[:100]


def _first(raw: dict, *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = raw.get(key)
        if value:
            return value
    return default


class BaseScraper(ABC):
    """
    One external source of scheme records.
    fetch() tries the JSON API, then the HTML listing, then adds any
    curated records the source carries. It never raises.
    """

    name: str = "Unknown"
    description: str = ""
    id_prefix: str = "scheme"
    base_url: str = ""
    api_url: Optional[str] = None
    listing_url: Optional[str] = None

    USER_AGENT = "Mozilla/5.0 (compatible; YojanaBot/1.0)"

    # Common patterns for scheme cards on portal listing pages
    CARD_SELECTOR = ".scheme-card, .scheme-item"
    TITLE_SELECTOR = ".scheme-title, h3, h4"
    CATEGORY_SELECTOR = ".scheme-category, .category"
    DESCRIPTION_SELECTOR = ".scheme-description, .description"
    BENEFITS_SELECTOR = ".benefits, .scheme-benefits"
    CONTACT_SELECTOR = ".contact, .helpline"
    ELIGIBILITY_SELECTOR = ".eligibility li, .eligibility-item"

    def __init__(
        self,
        api_timeout: float = 10.0,
        scrape_timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_timeout = api_timeout
        self.scrape_timeout = scrape_timeout
        self._transport = transport

    # ══════════════════════════════════════════
    # HTTP Fetch
    # ══════════════════════════════════════════

    async def fetch_page(self, url: str, timeout: float) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=timeout,
            headers={"User-Agent": self.USER_AGENT},
            follow_redirects=True,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response

    async def fetch_json(self, url: str) -> Any:
        response = await self.fetch_page(url, self.api_timeout)
        return response.json()

    async def fetch_html(self, url: str) -> BeautifulSoup:
        """Fetch a URL and return parsed BeautifulSoup."""
        response = await self.fetch_page(url, self.scrape_timeout)
        return BeautifulSoup(response.text, "html.parser")

    # ══════════════════════════════════════════
    # Fetch Strategy
    # ══════════════════════════════════════════

    async def fetch(self) -> list[dict]:
        """All raw scheme dicts this source can provide right now."""
        logger.info(f"📡 Fetching data from {self.name}...")
        try:
            live = await self.fetch_live()
        except Exception as e:
            logger.error(f"❌ Error fetching {self.name} data: {e}")
            live = []
        return live + self.curated_schemes()

    async def fetch_live(self) -> list[dict]:
        if self.api_url:
            try:
                data = await self.fetch_json(self.api_url)
                schemes = self.parse_api_response(data)
                if schemes:
                    return schemes
                logger.info(f"ℹ️ {self.name} API returned no schemes, trying web scraping...")
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"⚠️ {self.name} API not available, trying web scraping... ({e})")

        if self.listing_url:
            try:
                soup = await self.fetch_html(self.listing_url)
                return self.parse_listing(soup)
            except httpx.HTTPError as e:
                logger.warning(f"⚠️ {self.name} listing page unavailable: {e}")

        return []

    def curated_schemes(self) -> list[dict]:
        """Hand-maintained records shipped with the source."""
        return []

    # ══════════════════════════════════════════
    # Parsing
    # ══════════════════════════════════════════

    def parse_api_response(self, data: Any) -> list[dict]:
        if isinstance(data, list):
            items = data
        elif isinstance(data, dict):
            items = data.get("schemes") or data.get("data") or data.get("results") or []
        else:
            items = []

        schemes = []
        for raw in items:
            if not isinstance(raw, dict):
                continue
            scheme = self.map_api_scheme(raw)
            if scheme:
                schemes.append(scheme)
        return schemes

    def map_api_scheme(self, raw: dict) -> Optional[dict]:
        """Map one API payload onto our raw scheme format."""
        name = str(_first(raw, "schemeName", "name", "title")).strip()
        if not name:
            return None

        category = _first(raw, "category", "categories", default="General")
        if isinstance(category, list):
            category = category[0] if category else "General"

        return {
            "id": f"{self.id_prefix}-{generate_slug(name)}",
            "name": name,
            "category": category,
            "objective": _first(raw, "objective", "description", "schemeDescription"),
            "eligibility": _first(raw, "eligibility", "eligibilityCriteria", default=[]),
            "documentsRequired": _first(raw, "documentsRequired", "documents", default=[]),
            "applicationProcedure": _first(raw, "applicationProcedure", "howToApply", "applicationProcess", default=[]),
            "benefits": _first(raw, "benefits", "schemeBenefits"),
            "contactInfo": _first(raw, "contactInfo", "helpline"),
            "website": _first(raw, "website", "schemeUrl", "applicationUrl", default=self.base_url),
            "tags": _first(raw, "tags", "keywords", default=[]),
            "lastUpdated": _first(raw, "lastUpdated", "updatedAt", "updated_at", default=None),
            "source": f"{self.name} (API)",
        }

    def parse_listing(self, soup: BeautifulSoup) -> list[dict]:
        """Extract scheme cards from a portal listing page."""
        schemes = []
        for element in soup.select(self.CARD_SELECTOR):
            name = self._text(element, self.TITLE_SELECTOR)
            if not name:
                continue
            schemes.append({
                "id": f"{self.id_prefix}-{generate_slug(name)}",
                "name": name,
                "category": self._text(element, self.CATEGORY_SELECTOR) or "General",
                "objective": self._text(element, self.DESCRIPTION_SELECTOR),
                "eligibility": [
                    li.get_text(strip=True)
                    for li in element.select(self.ELIGIBILITY_SELECTOR)
                    if li.get_text(strip=True)
                ],
                "benefits": self._text(element, self.BENEFITS_SELECTOR),
                "contactInfo": self._text(element, self.CONTACT_SELECTOR),
                "website": self.base_url,
                "source": self.name,
            })
        return schemes

    @staticmethod
    def _text(element: Tag, selector: str) -> str:
        found = element.select_one(selector)
        return found.get_text(" ", strip=True) if found else ""

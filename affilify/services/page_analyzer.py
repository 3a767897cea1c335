from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx
from bs4 import BeautifulSoup

from affilify.services.types import (
    DESCRIPTION_MAX_CHARS,
    PRICE_MAX_CHARS,
    TITLE_MAX_CHARS,
    ProductSummary,
)


logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Amazing Product"
DEFAULT_DESCRIPTION = "Discover this incredible product that will transform your life."
DEFAULT_PRICE = "$99.99"

FALLBACK_TITLE = "Premium Product"
FALLBACK_DESCRIPTION = "An amazing product that delivers exceptional value and results."
FALLBACK_PRICE = "$99.99"

Strategy = Callable[[BeautifulSoup], Optional[str]]


class PageFetchError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _clean(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def _text_of(selector: str) -> Strategy:
    def _extract(soup: BeautifulSoup) -> Optional[str]:
        el = soup.select_one(selector)
        return el.get_text(" ", strip=True) if el else None

    return _extract


def _meta_content(**attrs: str) -> Strategy:
    def _extract(soup: BeautifulSoup) -> Optional[str]:
        meta = soup.find("meta", attrs=attrs)
        if not meta:
            return None
        content = meta.get("content")
        return content if isinstance(content, str) else None

    return _extract


_TITLE_STRATEGIES: tuple[Strategy, ...] = (
    _text_of("title"),
    _text_of("h1"),
    _text_of('[data-testid="product-title"]'),
)
_DESCRIPTION_STRATEGIES: tuple[Strategy, ...] = (
    _meta_content(name="description"),
    _meta_content(property="og:description"),
    _text_of("p"),
)
_PRICE_STRATEGIES: tuple[Strategy, ...] = (
    _text_of('[data-testid="price"]'),
    _text_of(".price"),
    _text_of('[class*="price"]'),
)


def _first_match(soup: BeautifulSoup, strategies: tuple[Strategy, ...], default: str) -> str:
    for strategy in strategies:
        value = _clean(strategy(soup))
        if value:
            return value
    return default


def extract_summary(html: str, url: str) -> ProductSummary:
    soup = BeautifulSoup(html, "html.parser")
    title = _first_match(soup, _TITLE_STRATEGIES, DEFAULT_TITLE)
    description = _first_match(soup, _DESCRIPTION_STRATEGIES, DEFAULT_DESCRIPTION)
    price = _first_match(soup, _PRICE_STRATEGIES, DEFAULT_PRICE)
    return ProductSummary(
        title=title[:TITLE_MAX_CHARS],
        description=description[:DESCRIPTION_MAX_CHARS],
        price=price[:PRICE_MAX_CHARS],
        original_url=url,
    )


def fallback_summary(url: str) -> ProductSummary:
    return ProductSummary(
        title=FALLBACK_TITLE,
        description=FALLBACK_DESCRIPTION,
        price=FALLBACK_PRICE,
        original_url=url,
    )


class PageAnalyzer:
    """Best-effort single-page product extraction. ``analyze`` never raises."""

    def __init__(self, *, user_agent: str, timeout_seconds: float = 15.0) -> None:
        self._user_agent = user_agent
        self._timeout = timeout_seconds

    async def analyze(self, url: str) -> ProductSummary:
        try:
            html = await self._fetch_html(url)
        except (PageFetchError, httpx.HTTPError) as exc:
            logger.warning("Product page fetch failed; using fallback summary", extra={"url": url, "error": str(exc)})
            return fallback_summary(url)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected product page fetch failure; using fallback summary", extra={"url": url})
            return fallback_summary(url)

        try:
            summary = extract_summary(html, url)
        except Exception:  # noqa: BLE001
            logger.exception("Product page extraction failed; using fallback summary", extra={"url": url})
            return fallback_summary(url)

        logger.info("Analyzed product page", extra={"url": url, "title": summary.title})
        return summary

    async def _fetch_html(self, url: str) -> str:
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            response = await client.get(url, headers=headers)
        if response.status_code >= 400:
            raise PageFetchError(
                f"Product page returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

"""Content-fetch client backed by the Firecrawl scrape API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from peakconditions.config.settings import settings
from peakconditions.providers.errors import FetchTimeoutError, NotFoundError, UnavailableError
from peakconditions.providers.http import request_json

logger = logging.getLogger(__name__)

_SCRAPE_PATH = "/v1/scrape"
_NOT_FOUND_MARKERS = ("404", "page not found", "not found")
NOT_FOUND_MAX_LENGTH = 500


@dataclass
class ScrapedPage:
    url: str
    raw_text: str
    markdown: str | None = None
    status_code: int | None = None


def looks_like_not_found(raw_text: str) -> bool:
    """Short pages carrying not-found markers are error pages, not content."""
    if len(raw_text) >= NOT_FOUND_MAX_LENGTH:
        return False
    lower = raw_text.lower()
    return any(marker in lower for marker in _NOT_FOUND_MARKERS)


async def scrape_url(client: httpx.AsyncClient, url: str, timeout: float) -> ScrapedPage:
    api_key = settings.providers.firecrawl_api_key
    if not api_key:
        raise UnavailableError("Firecrawl API key not configured", url=url)

    endpoint = f"{settings.providers.firecrawl_base_url.rstrip('/')}{_SCRAPE_PATH}"
    body = {
        "url": url,
        "formats": ["markdown", "html"],
        "onlyMainContent": True,
        "timeout": int(timeout * 1000),
    }
    headers = {"Authorization": f"Bearer {api_key}"}
    logger.debug("Scraping %s (timeout=%ss)", url, timeout)
    try:
        payload = await request_json(client, "POST", endpoint, headers=headers, json_body=body, timeout=timeout)
    except FetchTimeoutError as exc:
        raise FetchTimeoutError(f"Firecrawl request timeout after {timeout:g}s: {url}", url=url) from exc
    except NotFoundError as exc:
        raise UnavailableError(f"Firecrawl endpoint not found: {endpoint}", url=url) from exc

    if not isinstance(payload, dict) or not payload.get("success", True):
        message = payload.get("error") if isinstance(payload, dict) else None
        raise UnavailableError(f"Firecrawl scrape failed for {url}: {message or 'unknown error'}", url=url)

    data = payload.get("data") or {}
    if not isinstance(data, dict) or not isinstance(data.get("metadata") or {}, dict):
        raise UnavailableError(f"Malformed Firecrawl response for {url}", url=url)
    metadata = data.get("metadata") or {}
    status_code = metadata.get("statusCode")
    if status_code in (404, 410):
        raise NotFoundError(f"Source URL returned {status_code}: {url}", url=url)

    markdown = data.get("markdown") or ""
    raw_text = markdown or data.get("html") or data.get("content") or ""
    if not isinstance(raw_text, str):
        raise UnavailableError(f"Malformed Firecrawl content for {url}", url=url)
    if looks_like_not_found(raw_text):
        raise NotFoundError(f"Source URL appears to be a 404 page: {url}", url=url)

    return ScrapedPage(
        url=url,
        raw_text=raw_text,
        markdown=markdown or None,
        status_code=status_code if isinstance(status_code, int) else None,
    )

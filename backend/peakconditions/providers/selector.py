"""Ordered fallback chain for road and land status sources.

Each strategy either returns a SourceResult or raises FetchError; the first
success wins and the last failure is re-raised when every strategy fails.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx

from peakconditions.config.settings import settings
from peakconditions.providers import caltrans, firecrawl
from peakconditions.providers.errors import FetchError, UnavailableError
from peakconditions.schemas.catalog import MonitoredPoint, SourceConfig
from peakconditions.schemas.status import StatusCode
from peakconditions.scoring.classifier import classify
from peakconditions.scoring.summary import road_conditions

logger = logging.getLogger(__name__)

MAP_EXTENT_DEGREES = 0.1
MIN_MAP_SUMMARY_LENGTH = 30


@dataclass
class SourceResult:
    status_code: StatusCode
    summary: str
    raw_payload: str
    strategy: str
    details: Optional[dict[str, Any]] = field(default=None)
    advisory: bool = False


@dataclass
class FetchContext:
    client: httpx.AsyncClient
    point: MonitoredPoint
    source: SourceConfig


Strategy = Callable[[FetchContext], Awaitable[SourceResult]]


def is_dynamic_map_locator(locator: str) -> bool:
    lower = locator.lower()
    return any(host in lower for host in settings.providers.dynamic_map_hosts)


def uses_incident_api(source: SourceConfig) -> bool:
    return source.kind == "road_status" and (
        source.strategy == "structured_api" or caltrans.is_incident_locator(source.locator)
    )


def dynamic_map_area_url(lat: float, lng: float) -> str:
    extent = (
        lng - MAP_EXTENT_DEGREES,
        lat - MAP_EXTENT_DEGREES,
        lng + MAP_EXTENT_DEGREES,
        lat + MAP_EXTENT_DEGREES,
    )
    return f"{settings.providers.dynamic_map_url}?extent={','.join(str(value) for value in extent)}"


def _require_coordinates(point: MonitoredPoint) -> tuple[float, float]:
    coordinates = point.coordinates
    if coordinates is None:
        raise UnavailableError(f"Point {point.name} has no coordinates")
    return coordinates


async def incident_api(ctx: FetchContext) -> SourceResult:
    lat, lng = _require_coordinates(ctx.point)
    closures = await caltrans.fetch_lane_closures(ctx.client, lat, lng)
    status_code, summary = caltrans.summarize_closures(closures)
    closure_dicts = [closure.model_dump() for closure in closures]
    return SourceResult(
        status_code=status_code,
        summary=summary,
        raw_payload=json.dumps(closure_dicts, indent=2),
        strategy="incident_api",
        details={"closures": closure_dicts},
    )


async def dynamic_map_area(ctx: FetchContext) -> SourceResult:
    lat, lng = _require_coordinates(ctx.point)
    url = dynamic_map_area_url(lat, lng)
    page = await firecrawl.scrape_url(ctx.client, url, settings.timeouts.dynamic_page_seconds)
    classified = classify(page.raw_text, dynamic_map=True)
    usable = len(classified.summary) > MIN_MAP_SUMMARY_LENGTH or road_conditions(page.raw_text)
    if classified.status_code == "unknown" or classified.advisory or not usable:
        raise UnavailableError("No road conditions found on map page", url=url)
    return SourceResult(
        status_code=classified.status_code,
        summary=classified.summary,
        raw_payload=page.raw_text,
        strategy="dynamic_map_area",
        details={"url": url},
    )


async def locator_page(ctx: FetchContext) -> SourceResult:
    locator = ctx.source.locator
    if not locator:
        raise UnavailableError(f"Source {ctx.source.label or ctx.source.id} has no locator")
    dynamic = is_dynamic_map_locator(locator)
    timeout = settings.timeouts.dynamic_page_seconds if dynamic else settings.timeouts.content_fetch_seconds
    page = await firecrawl.scrape_url(ctx.client, locator, timeout)
    classified = classify(page.raw_text, dynamic_map=dynamic)
    return SourceResult(
        status_code=classified.status_code,
        summary=classified.summary,
        raw_payload=page.raw_text,
        strategy="content_fetch",
        advisory=classified.advisory,
    )


def strategies_for(point: MonitoredPoint, source: SourceConfig) -> list[tuple[str, Strategy]]:
    if not uses_incident_api(source):
        return [("content_fetch", locator_page)]
    strategies: list[tuple[str, Strategy]] = []
    if point.coordinates is not None:
        strategies.append(("incident_api", incident_api))
        strategies.append(("dynamic_map_area", dynamic_map_area))
    strategies.append(("content_fetch", locator_page))
    return strategies


async def fetch_with_fallback(ctx: FetchContext) -> SourceResult:
    last_error: FetchError | None = None
    for name, strategy in strategies_for(ctx.point, ctx.source):
        try:
            return await strategy(ctx)
        except FetchError as exc:
            logger.debug(
                "Strategy %s failed for %s (%s): %s",
                name,
                ctx.point.name,
                ctx.source.label,
                exc,
            )
            last_error = exc
    if last_error is None:
        raise UnavailableError(f"No fetch strategy for source {ctx.source.id}")
    raise last_error

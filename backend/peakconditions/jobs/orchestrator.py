"""Fetch one source and turn the result into a snapshot.

Road and land failures become degraded snapshots so the reader always has a
message to show; weather failures propagate and leave no snapshot behind.
"""

from __future__ import annotations

import datetime
import json
import logging
import re

import httpx

from peakconditions.config.settings import settings
from peakconditions.db.snapshots import SnapshotStore
from peakconditions.providers import nws
from peakconditions.providers.errors import FetchError, UnavailableError
from peakconditions.providers.selector import FetchContext, fetch_with_fallback, uses_incident_api
from peakconditions.schemas.catalog import MonitoredPoint, SourceConfig
from peakconditions.schemas.status import FailureCategory, StatusSnapshot
from peakconditions.scoring.summary import PAGE_NOT_FOUND

logger = logging.getLogger(__name__)

DEGRADED_SUMMARIES: dict[FailureCategory, str] = {
    "not_found": PAGE_NOT_FOUND,
    "timeout": "Data fetch timed out. Please check the source for current conditions.",
    "unavailable": "Unable to fetch data automatically. Please check the source for current conditions.",
}
_COORDINATE_LOCATOR_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _truncate_payload(raw_payload: str) -> str:
    return raw_payload[: settings.classifier.raw_payload_max_length]


def degraded_summary(source: SourceConfig, error: FetchError) -> str:
    summary = DEGRADED_SUMMARIES[error.category]
    if uses_incident_api(source):
        providers = settings.providers
        host = providers.dynamic_map_url.split("//", 1)[-1].rstrip("/")
        summary = f"{summary} For road conditions, check QuickMap ({host}) or call {providers.dynamic_map_phone}."
    return summary


def weather_coordinates(point: MonitoredPoint, source: SourceConfig) -> tuple[float, float]:
    match = _COORDINATE_LOCATOR_RE.match(source.locator or "")
    if match:
        return float(match.group(1)), float(match.group(2))
    coordinates = point.coordinates
    if coordinates is None:
        raise UnavailableError(f"Point {point.name} has no coordinates for a weather lookup")
    return coordinates


async def build_weather_snapshot(
    client: httpx.AsyncClient, point: MonitoredPoint, source: SourceConfig
) -> StatusSnapshot:
    lat, lng = weather_coordinates(point, source)
    report = await nws.fetch_weather(client, lat, lng, point_name=point.name)
    payload = report.model_dump(mode="json")
    return StatusSnapshot(
        point_id=point.id,
        source_id=source.id,
        kind=source.kind,
        raw_payload=_truncate_payload(json.dumps(payload, indent=2)),
        status_code="unknown",
        summary=report.summary,
        outcome="success",
        details=payload,
        fetched_at=_now(),
    )


async def build_status_snapshot(
    client: httpx.AsyncClient, point: MonitoredPoint, source: SourceConfig
) -> StatusSnapshot:
    try:
        result = await fetch_with_fallback(FetchContext(client=client, point=point, source=source))
    except FetchError as exc:
        logger.warning(
            "Degraded %s snapshot for %s (%s): %s [%s]",
            source.kind,
            point.name,
            source.label,
            exc,
            exc.category,
        )
        return StatusSnapshot(
            point_id=point.id,
            source_id=source.id,
            kind=source.kind,
            raw_payload=_truncate_payload(f"Error: {exc}"),
            status_code="unknown",
            summary=degraded_summary(source, exc),
            outcome="degraded",
            details={"failure": exc.category, "url": exc.url},
            fetched_at=_now(),
        )

    details = dict(result.details or {})
    details["strategy"] = result.strategy
    outcome = "success"
    # A road page with nothing but the map/phone advisory is retried like a failed fetch
    if result.advisory and source.kind == "road_status":
        logger.warning(
            "Degraded %s snapshot for %s (%s): page had no road status [advisory]",
            source.kind,
            point.name,
            source.label,
        )
        outcome = "degraded"
        details["failure"] = "unavailable"
    return StatusSnapshot(
        point_id=point.id,
        source_id=source.id,
        kind=source.kind,
        raw_payload=_truncate_payload(result.raw_payload),
        status_code=result.status_code,
        summary=result.summary,
        outcome=outcome,
        details=details,
        fetched_at=_now(),
    )


async def build_snapshot(
    client: httpx.AsyncClient, point: MonitoredPoint, source: SourceConfig
) -> StatusSnapshot:
    if source.kind == "weather":
        return await build_weather_snapshot(client, point, source)
    return await build_status_snapshot(client, point, source)


async def refresh_source(
    store: SnapshotStore,
    client: httpx.AsyncClient,
    point: MonitoredPoint,
    source: SourceConfig,
) -> StatusSnapshot:
    """Fetch one source and append the snapshot.

    Raises FetchError for weather failures; nothing is persisted in that case.
    """
    snapshot = await build_snapshot(client, point, source)
    await store.append(snapshot)
    logger.info(
        "Stored %s snapshot for %s (%s): %s/%s",
        source.kind,
        point.name,
        source.label,
        snapshot.outcome,
        snapshot.status_code,
    )
    return snapshot

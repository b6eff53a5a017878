"""Structured lane/road closure client for the Caltrans public endpoints."""

from __future__ import annotations

import datetime
import logging
import math
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from peakconditions.cache import get_payload, set_payload
from peakconditions.config.settings import settings
from peakconditions.providers.errors import FetchError, UnavailableError
from peakconditions.providers.http import get_json
from peakconditions.schemas.status import StatusCode

logger = logging.getLogger(__name__)

NO_ACTIVE_CLOSURES = "No active lane closures reported in this area."
_KM_PER_DEGREE = 111.0


class LaneClosure(BaseModel):
    id: str
    route: str = "Unknown"
    direction: str = ""
    location: str = ""
    description: str = ""
    start_date: str = ""
    end_date: str = ""
    closure_type: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class BoundingBox(BaseModel):
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float


def is_incident_locator(locator: str) -> bool:
    lower = locator.lower()
    return any(marker in lower for marker in settings.providers.incident_hosts)


def bounding_box(lat: float, lng: float, radius_km: float) -> BoundingBox:
    lat_delta = radius_km / _KM_PER_DEGREE
    lng_delta = radius_km / (_KM_PER_DEGREE * math.cos(math.radians(lat)))
    return BoundingBox(
        min_lat=lat - lat_delta,
        min_lng=lng - lng_delta,
        max_lat=lat + lat_delta,
        max_lng=lng + lng_delta,
    )


def _parse_closures(payload: Any) -> list[LaneClosure]:
    if not isinstance(payload, dict):
        raise UnavailableError("Unexpected closure payload")
    features = payload.get("features")
    if not isinstance(features, list):
        raise UnavailableError("Closure payload has no features list")

    closures: list[LaneClosure] = []
    for index, feature in enumerate(features):
        if not isinstance(feature, dict):
            continue
        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        if not isinstance(props, dict) or not isinstance(geometry, dict):
            raise UnavailableError(f"Malformed closure feature at index {index}")
        coords = geometry.get("coordinates")
        has_point = isinstance(coords, list) and len(coords) >= 2
        try:
            closures.append(
                LaneClosure(
                    id=f"{props.get('route') or 'unknown'}-{index}",
                    route=props.get("route") or "Unknown",
                    direction=props.get("direction") or "",
                    location=props.get("location") or "",
                    description=props.get("description") or "",
                    start_date=props.get("start_date") or "",
                    end_date=props.get("end_date") or "",
                    closure_type=props.get("closure_type") or "",
                    latitude=coords[1] if has_point else None,
                    longitude=coords[0] if has_point else None,
                )
            )
        except ValidationError as exc:
            raise UnavailableError(f"Malformed closure feature at index {index}: {exc.error_count()} errors") from exc
    return closures


async def fetch_lane_closures(
    client: httpx.AsyncClient,
    lat: float,
    lng: float,
    radius_km: float | None = None,
) -> list[LaneClosure]:
    """Return closures inside the bounding box; raises UnavailableError when every endpoint fails."""
    radius = radius_km or settings.providers.incident_search_radius_km
    box = bounding_box(lat, lng, radius)
    cache_key = f"caltrans:closures:{box.min_lng:.3f}:{box.min_lat:.3f}:{box.max_lng:.3f}:{box.max_lat:.3f}"
    cached = await get_payload(cache_key)
    if cached is not None:
        return _parse_closures(cached)

    last_error: FetchError | None = None
    for template in settings.providers.incident_endpoints:
        url = template.format(**box.model_dump())
        try:
            payload = await get_json(
                client,
                url,
                headers={"Accept": "application/json"},
                timeout=settings.timeouts.structured_api_seconds,
            )
            closures = _parse_closures(payload)
        except FetchError as exc:
            logger.debug("Closure endpoint failed (%s): %s", url, exc)
            last_error = exc
            continue
        await set_payload(cache_key, payload, settings.providers.incident_cache_ttl_seconds)
        return closures

    raise UnavailableError(f"Closure endpoints unavailable: {last_error}")


def _parse_time(value: str) -> datetime.datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.UTC)
    return parsed


def _is_active(closure: LaneClosure, now: datetime.datetime) -> bool:
    start = _parse_time(closure.start_date)
    end = _parse_time(closure.end_date)
    if start and end:
        return start <= now <= end
    # Undated closures are treated as active
    return True


def _routes(closures: list[LaneClosure]) -> str:
    return ", ".join(dict.fromkeys(closure.route for closure in closures if closure.route))


def summarize_closures(
    closures: list[LaneClosure], now: datetime.datetime | None = None
) -> tuple[StatusCode, str]:
    now = now or datetime.datetime.now(datetime.UTC)
    active = [closure for closure in closures if _is_active(closure, now)]
    if not active:
        return "open", NO_ACTIVE_CLOSURES

    full_closures = [
        closure
        for closure in active
        if "full" in closure.closure_type.lower()
        or "closed" in closure.description.lower()
        or "closure" in closure.description.lower()
    ]
    if full_closures:
        return (
            "closed",
            f"Road closures reported on {_routes(full_closures)}. "
            f"{len(full_closures)} active closure(s). Check source for details.",
        )

    restrictions = [
        closure
        for closure in active
        if any(term in closure.description.lower() for term in ("chain", "restriction", "one lane"))
    ]
    if restrictions:
        chains = any("chain" in closure.description.lower() for closure in restrictions)
        return (
            "chains_required" if chains else "restricted",
            f"Road restrictions reported on {_routes(restrictions)}. "
            f"{len(restrictions)} active restriction(s). Check source for details.",
        )

    return (
        "restricted",
        f"{len(active)} active lane closure(s) reported on {_routes(active)}. Check source for details.",
    )

from __future__ import annotations

import datetime

from peakconditions.config.settings import StalenessSettings, settings
from peakconditions.schemas.catalog import SourceConfig
from peakconditions.schemas.status import SourceKind, StatusSnapshot


def staleness_threshold(kind: SourceKind, config: StalenessSettings | None = None) -> datetime.timedelta:
    config = config or settings.staleness
    hours = {
        "weather": config.weather_hours,
        "land_status": config.land_status_hours,
        "road_status": config.road_status_hours,
    }[kind]
    return datetime.timedelta(hours=hours)


def needs_refresh(
    source: SourceConfig,
    latest: StatusSnapshot | None,
    now: datetime.datetime | None = None,
    force: bool = False,
) -> bool:
    """True when a source has no snapshot, is forced, is past its threshold,
    or is a road source whose last attempt was degraded."""
    if latest is None or force:
        return True
    now = now or datetime.datetime.now(datetime.UTC)
    if now - latest.fetched_at > staleness_threshold(source.kind):
        return True
    return source.kind == "road_status" and latest.outcome == "degraded"

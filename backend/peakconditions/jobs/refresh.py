"""Refresh policy for point reads and scheduled batch jobs.

Sources that were never fetched are refreshed in the foreground with a bounded
wait; stale sources are refreshed in the background so reads never block on
slow upstreams.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import uuid
from typing import Optional

from peakconditions.config.settings import settings
from peakconditions.db.snapshots import SnapshotStore
from peakconditions.jobs.orchestrator import refresh_source
from peakconditions.jobs.staleness import needs_refresh
from peakconditions.providers.http import build_client
from peakconditions.schemas.catalog import MonitoredPoint, SourceConfig
from peakconditions.schemas.status import (
    LatestStatus,
    PointConditions,
    RefreshError,
    RefreshJobResult,
    RefreshMode,
    SourceKind,
    StatusSnapshot,
)

logger = logging.getLogger(__name__)

# Strong references keep fire-and-forget tasks alive until they finish
_background_tasks: set[asyncio.Task] = set()


def build_conditions(
    point: MonitoredPoint,
    latest: dict[uuid.UUID, StatusSnapshot],
    refresh_mode: RefreshMode = "none",
) -> PointConditions:
    statuses: list[LatestStatus] = []
    for source in point.sources:
        snapshot = latest.get(source.id)
        statuses.append(
            LatestStatus(
                source_id=source.id,
                label=source.label,
                kind=source.kind,
                locator=source.locator,
                status_code=snapshot.status_code if snapshot else None,
                summary=snapshot.summary if snapshot else None,
                fetched_at=snapshot.fetched_at if snapshot else None,
                outcome=snapshot.outcome if snapshot else None,
            )
        )
    return PointConditions(
        point_id=point.id,
        name=point.name,
        refresh_mode=refresh_mode,
        statuses=statuses,
    )


def _log_refresh_failure(point: MonitoredPoint, source: SourceConfig, exc: BaseException) -> None:
    if isinstance(exc, (asyncio.TimeoutError, asyncio.CancelledError)):
        logger.warning("Refresh abandoned for %s (%s)", point.name, source.label)
    else:
        logger.error(
            "Refresh failed for %s (%s): %s",
            point.name,
            source.label,
            exc,
            exc_info=(type(exc), exc, exc.__traceback__),
        )


async def refresh_foreground(
    store: SnapshotStore,
    point: MonitoredPoint,
    sources: list[SourceConfig],
    per_source_timeout: float | None = None,
    total_timeout: float | None = None,
) -> int:
    """Refresh sources concurrently, bounded per source and overall.

    Work still pending when the overall bound expires is cancelled. Returns the
    number of snapshots written.
    """
    per_source_timeout = per_source_timeout or settings.timeouts.foreground_source_seconds
    total_timeout = total_timeout or settings.timeouts.foreground_total_seconds

    async with build_client() as client:
        tasks = {
            asyncio.create_task(
                asyncio.wait_for(refresh_source(store, client, point, source), per_source_timeout)
            ): source
            for source in sources
        }
        _, pending = await asyncio.wait(tasks, timeout=total_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    written = 0
    for task, source in tasks.items():
        if task in pending:
            logger.warning("Refresh abandoned for %s (%s)", point.name, source.label)
            continue
        exc = task.exception()
        if exc is not None:
            _log_refresh_failure(point, source, exc)
            continue
        written += 1
    return written


async def _refresh_in_background(
    store: SnapshotStore, point: MonitoredPoint, sources: list[SourceConfig]
) -> None:
    try:
        async with build_client() as client:
            results = await asyncio.gather(
                *(refresh_source(store, client, point, source) for source in sources),
                return_exceptions=True,
            )
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                _log_refresh_failure(point, source, result)
    except Exception:
        logger.exception("Background refresh failed for %s", point.name)


def schedule_background_refresh(
    store: SnapshotStore, point: MonitoredPoint, sources: list[SourceConfig]
) -> asyncio.Task:
    task = asyncio.create_task(_refresh_in_background(store, point, sources))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def ensure_fresh_status(
    store: SnapshotStore,
    point_id: uuid.UUID,
    force: bool = False,
    now: Optional[datetime.datetime] = None,
) -> PointConditions | None:
    """Latest status per source of a point, refreshing as the staleness rules require."""
    point = await store.get_point(point_id)
    if point is None:
        return None

    force = force or settings.force_status_refresh
    now = now or datetime.datetime.now(datetime.UTC)
    latest = await store.latest_snapshots(point.id)

    missing = [source for source in point.sources if source.id not in latest]
    stale = [
        source
        for source in point.sources
        if source.id in latest and needs_refresh(source, latest[source.id], now=now, force=force)
    ]

    refresh_mode: RefreshMode = "none"
    if missing:
        refresh_mode = "foreground"
        await refresh_foreground(store, point, missing)
        latest = await store.latest_snapshots(point.id)
    if stale:
        if refresh_mode == "none":
            refresh_mode = "background"
        schedule_background_refresh(store, point, stale)

    return build_conditions(point, latest, refresh_mode)


async def refresh_point(
    store: SnapshotStore, point_id: uuid.UUID, force: bool = True
) -> PointConditions | None:
    """Refresh a point's sources and wait for all of them.

    With force every source is fetched; otherwise only those the staleness
    rules select.
    """
    point = await store.get_point(point_id)
    if point is None:
        return None

    latest = await store.latest_snapshots(point.id)
    now = datetime.datetime.now(datetime.UTC)
    sources = [
        source
        for source in point.sources
        if needs_refresh(source, latest.get(source.id), now=now, force=force)
    ]
    if sources:
        async with build_client() as client:
            results = await asyncio.gather(
                *(refresh_source(store, client, point, source) for source in sources),
                return_exceptions=True,
            )
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                _log_refresh_failure(point, source, result)
        latest = await store.latest_snapshots(point.id)

    return build_conditions(point, latest, "forced" if force else "foreground")


async def refresh_kind(
    store: SnapshotStore,
    kind: SourceKind,
    force: bool = False,
    pause_seconds: float | None = None,
) -> RefreshJobResult:
    """Refresh one kind of source across all active points, one at a time."""
    pause = settings.batch_pause_seconds if pause_seconds is None else pause_seconds
    now = datetime.datetime.now(datetime.UTC)
    result = RefreshJobResult(kind=kind, timestamp=now)
    points = await store.list_points_with_kind(kind)
    logger.info("Refreshing %s for %d points", kind, len(points))

    async with build_client() as client:
        for point in points:
            latest = await store.latest_snapshots(point.id)
            for source in point.sources:
                if not needs_refresh(source, latest.get(source.id), now=now, force=force):
                    continue
                result.total += 1
                try:
                    await refresh_source(store, client, point, source)
                    result.successful += 1
                except Exception as exc:
                    _log_refresh_failure(point, source, exc)
                    result.failed += 1
                    result.errors.append(
                        RefreshError(
                            point_id=str(point.id),
                            point_name=point.name,
                            source_id=str(source.id),
                            error=str(exc),
                        )
                    )
                if pause:
                    await asyncio.sleep(pause)

    logger.info(
        "Refreshed %s: %d successful, %d failed of %d",
        kind,
        result.successful,
        result.failed,
        result.total,
    )
    return result


def run_refresh(store: SnapshotStore, point_id: uuid.UUID, force: bool = False) -> PointConditions | None:
    return asyncio.run(refresh_point(store, point_id, force=force))


def run_refresh_kind(store: SnapshotStore, kind: SourceKind, force: bool = False) -> RefreshJobResult:
    return asyncio.run(refresh_kind(store, kind, force=force))

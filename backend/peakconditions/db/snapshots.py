"""Catalog reads and the append-only snapshot log."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from peakconditions.db import models
from peakconditions.schemas.catalog import MonitoredPoint
from peakconditions.schemas.status import SourceKind, StatusSnapshot


class SnapshotStore:
    """Reads the catalog and appends snapshots; never updates or deletes rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get_point(self, point_id: uuid.UUID) -> MonitoredPoint | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(models.MonitoredPoint)
                .options(selectinload(models.MonitoredPoint.sources))
                .where(models.MonitoredPoint.id == point_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return MonitoredPoint.model_validate(row)

    async def list_points_with_kind(self, kind: SourceKind) -> list[MonitoredPoint]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(models.MonitoredPoint)
                .options(selectinload(models.MonitoredPoint.sources))
                .where(
                    models.MonitoredPoint.is_active.is_(True),
                    models.MonitoredPoint.sources.any(models.SourceConfig.kind == kind),
                )
                .order_by(models.MonitoredPoint.name)
            )
            points = [MonitoredPoint.model_validate(row) for row in result.scalars().all()]

        # Only the sources of the requested kind are relevant to the caller
        return [
            point.model_copy(
                update={"sources": [source for source in point.sources if source.kind == kind]}
            )
            for point in points
        ]

    async def latest_snapshots(self, point_id: uuid.UUID) -> dict[uuid.UUID, StatusSnapshot]:
        """Most recent snapshot per source of a point, keyed by source id."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(models.StatusSnapshot)
                .where(models.StatusSnapshot.point_id == point_id)
                .distinct(models.StatusSnapshot.source_id)
                .order_by(
                    models.StatusSnapshot.source_id,
                    models.StatusSnapshot.fetched_at.desc(),
                )
            )
            rows = result.scalars().all()
        return {row.source_id: StatusSnapshot.model_validate(row) for row in rows}

    async def append(self, snapshot: StatusSnapshot) -> StatusSnapshot:
        async with self.session_factory() as session:
            stmt = insert(models.StatusSnapshot).values(**snapshot.model_dump())
            # Idempotent: a snapshot id is written at most once.
            stmt = stmt.on_conflict_do_nothing(index_elements=["id"])
            await session.execute(stmt)
            await session.commit()
        return snapshot

# backend/peakconditions/db/models.py

import datetime
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class MonitoredPoint(Base):
    __tablename__ = "monitored_points"

    # Owned by the catalog service; read-only here
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    is_active = Column(Boolean, default=True, nullable=False)

    sources = relationship("SourceConfig", back_populates="point")

    def __repr__(self):
        return f"<MonitoredPoint(slug='{self.slug}')>"


class SourceConfig(Base):
    __tablename__ = "source_configs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    point_id = Column(UUID(as_uuid=True), ForeignKey("monitored_points.id"), nullable=False, index=True)
    label = Column(String, nullable=False, default="")
    kind = Column(String, nullable=False, index=True)
    locator = Column(String, nullable=False, default="")
    strategy = Column(String, nullable=False, default="content_fetch")

    point = relationship("MonitoredPoint", back_populates="sources")
    snapshots = relationship("StatusSnapshot", back_populates="source")

    def __repr__(self):
        return f"<SourceConfig(kind='{self.kind}', label='{self.label}')>"


class StatusSnapshot(Base):
    __tablename__ = "status_snapshots"
    __table_args__ = (Index("ix_status_snapshots_source_fetched", "source_id", "fetched_at"),)

    # Append-only: rows are inserted once and never updated
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    point_id = Column(UUID(as_uuid=True), ForeignKey("monitored_points.id"), nullable=False, index=True)
    source_id = Column(UUID(as_uuid=True), ForeignKey("source_configs.id"), nullable=False)
    kind = Column(String, nullable=False)
    raw_payload = Column(Text, nullable=False, default="")
    status_code = Column(String, nullable=False, default="unknown")
    summary = Column(Text, nullable=False)
    outcome = Column(String, nullable=False, default="success")
    details = Column("details_json", JSONB)
    fetched_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.datetime.now(datetime.UTC))

    source = relationship("SourceConfig", back_populates="snapshots")

    def __repr__(self):
        return f"<StatusSnapshot(kind='{self.kind}', status_code='{self.status_code}', outcome='{self.outcome}')>"

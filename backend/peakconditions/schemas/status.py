from __future__ import annotations

import datetime
import uuid
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StatusCode = Literal["open", "closed", "restricted", "chains_required", "unknown"]
SourceKind = Literal["weather", "land_status", "road_status"]
FetchStrategy = Literal["structured_api", "content_fetch"]
Outcome = Literal["success", "degraded", "error"]
FailureCategory = Literal["not_found", "timeout", "unavailable"]

SOURCE_KINDS: tuple[SourceKind, ...] = ("weather", "land_status", "road_status")


class StatusSnapshot(BaseModel):
    """One immutable fetch result for a (point, source) pair."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    point_id: uuid.UUID
    source_id: uuid.UUID
    kind: SourceKind
    raw_payload: str = ""
    status_code: StatusCode = "unknown"
    summary: str
    outcome: Outcome = "success"
    details: Optional[dict[str, Any]] = None
    fetched_at: datetime.datetime


class LatestStatus(BaseModel):
    source_id: uuid.UUID
    label: str
    kind: SourceKind
    locator: str
    status_code: Optional[StatusCode] = None
    summary: Optional[str] = None
    fetched_at: Optional[datetime.datetime] = None
    outcome: Optional[Outcome] = None


RefreshMode = Literal["none", "foreground", "background", "forced"]


class PointConditions(BaseModel):
    point_id: uuid.UUID
    name: str
    refresh_mode: RefreshMode = "none"
    statuses: list[LatestStatus] = Field(default_factory=list)


class RefreshError(BaseModel):
    point_id: str
    point_name: str
    source_id: str
    error: str


class RefreshJobResult(BaseModel):
    kind: SourceKind
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[RefreshError] = Field(default_factory=list)
    timestamp: datetime.datetime

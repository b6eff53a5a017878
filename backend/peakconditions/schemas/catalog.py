from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from peakconditions.schemas.status import FetchStrategy, SourceKind


class SourceConfig(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    point_id: uuid.UUID
    label: str = ""
    kind: SourceKind
    locator: str = ""
    strategy: FetchStrategy = "content_fetch"


class MonitoredPoint(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str = ""
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool = True
    sources: list[SourceConfig] = Field(default_factory=list)

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return self.latitude, self.longitude

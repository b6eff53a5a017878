import hmac
import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, status

from peakconditions.config.settings import settings
from peakconditions.db.session import AsyncSessionLocal
from peakconditions.db.snapshots import SnapshotStore
from peakconditions.jobs.refresh import ensure_fresh_status, refresh_kind, refresh_point
from peakconditions.schemas.status import PointConditions, RefreshJobResult, SourceKind

router = APIRouter()


def get_store() -> SnapshotStore:
    """FastAPI dependency for the snapshot store."""
    return SnapshotStore(AsyncSessionLocal)


def _verify_cron_secret(authorization: str | None) -> None:
    secret = settings.cron_secret
    if not secret:
        return
    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Unauthorized."},
        )


def _point_not_found(point_id: uuid.UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": f"Point {point_id} not found."},
    )


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "service": settings.service_name}


@router.get("/points/{point_id}/conditions", response_model=PointConditions)
async def point_conditions_endpoint(
    point_id: uuid.UUID, store: SnapshotStore = Depends(get_store)
) -> PointConditions:
    conditions = await ensure_fresh_status(store, point_id)
    if conditions is None:
        raise _point_not_found(point_id)
    return conditions


@router.post("/points/{point_id}/refresh", response_model=PointConditions)
async def refresh_point_endpoint(
    point_id: uuid.UUID, store: SnapshotStore = Depends(get_store)
) -> PointConditions:
    conditions = await refresh_point(store, point_id, force=True)
    if conditions is None:
        raise _point_not_found(point_id)
    return conditions


@router.post("/jobs/refresh/{kind}", response_model=RefreshJobResult)
async def refresh_kind_endpoint(
    kind: SourceKind,
    force: bool = False,
    authorization: str | None = Header(default=None),
    store: SnapshotStore = Depends(get_store),
) -> RefreshJobResult:
    _verify_cron_secret(authorization)
    return await refresh_kind(store, kind, force=force)

"""
Traceability snapshot endpoints
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lotetrace.api.auth import RequestContext, get_request_context
from lotetrace.api.errors import service_errors
from lotetrace.core.database import get_db
from lotetrace.models.traceability import QrSnapshot
from lotetrace.schemas.traceability import QrSnapshotResponse
from lotetrace.services.production.lote_service import get_lote
from lotetrace.services.traceability import snapshot_service

router = APIRouter()


def _snapshot_response(snapshot: QrSnapshot) -> QrSnapshotResponse:
    return QrSnapshotResponse(
        id=snapshot.id,
        lote_id=snapshot.lote_id,
        public_token=snapshot.public_token,
        url=snapshot_service.public_url(snapshot.public_token),
        scan_count=snapshot.scan_count,
        is_active=snapshot.is_active,
        created_by_type=snapshot.created_by_type,
        created_at=snapshot.created_at,
    )


@router.post("/lotes/{lote_id}/snapshots", response_model=QrSnapshotResponse, status_code=status.HTTP_201_CREATED)
async def create_snapshot(
    lote_id: int,
    as_of: Optional[datetime] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Publish a new snapshot for the lote. Earlier snapshots keep resolving
    until they are revoked.
    """
    with service_errors(db):
        lote = get_lote(db, ctx.organization_id, lote_id)
        snapshot = snapshot_service.create_snapshot(db, lote, ctx.actor, as_of=as_of)
        db.commit()
    db.refresh(snapshot)
    return _snapshot_response(snapshot)


@router.get("/snapshots", response_model=List[QrSnapshotResponse])
async def get_snapshots(
    lote_id: Optional[int] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    snapshots = snapshot_service.list_snapshots(db, ctx.organization_id, lote_id=lote_id)
    return [_snapshot_response(snapshot) for snapshot in snapshots]


@router.put("/snapshots/{snapshot_id}/rotate", response_model=QrSnapshotResponse)
async def rotate_snapshot(
    snapshot_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        snapshot = snapshot_service.rotate_snapshot(db, ctx.organization_id, snapshot_id)
        db.commit()
    db.refresh(snapshot)
    return _snapshot_response(snapshot)


@router.put("/snapshots/{snapshot_id}/revoke", response_model=QrSnapshotResponse)
async def revoke_snapshot(
    snapshot_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        snapshot = snapshot_service.revoke_snapshot(db, ctx.organization_id, snapshot_id)
        db.commit()
    db.refresh(snapshot)
    return _snapshot_response(snapshot)

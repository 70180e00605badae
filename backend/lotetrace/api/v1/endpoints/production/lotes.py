"""
Lotti endpoints
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from lotetrace.api.auth import RequestContext, get_request_context
from lotetrace.core.database import get_db
from lotetrace.schemas.production import (
    AuditLogResponse,
    LoteCreate,
    LoteDetailResponse,
    LoteResponse,
    StayResponse,
)
from lotetrace.services.production import audit, lote_service
from lotetrace.services.production.stay_ledger import get_stays

from .common import lote_detail, service_errors

router = APIRouter()


@router.post("/lotes", response_model=LoteDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_lote(
    data: LoteCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Create a lote; it starts unassigned, with no stay."""
    with service_errors(db):
        lote = lote_service.create_lote(db, ctx.organization_id, data, ctx.actor)
        db.commit()
    db.refresh(lote)
    return lote_detail(db, lote)


@router.get("/lotes", response_model=List[LoteResponse])
async def get_lotes(
    status_filter: Optional[str] = Query(None, alias="status"),
    parent_lote_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return lote_service.list_lotes(
        db,
        ctx.organization_id,
        status=status_filter,
        parent_lote_id=parent_lote_id,
        skip=skip,
        limit=limit,
    )


@router.get("/lotes/{lote_id}", response_model=LoteDetailResponse)
async def get_lote(
    lote_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        lote = lote_service.get_lote(db, ctx.organization_id, lote_id)
    return lote_detail(db, lote)


@router.get("/lotes/{lote_id}/sub-lotes", response_model=List[LoteResponse])
async def get_sub_lotes(
    lote_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        lote = lote_service.get_lote(db, ctx.organization_id, lote_id)
    return list(lote.sub_lotes)


@router.get("/lotes/{lote_id}/stays", response_model=List[StayResponse])
async def get_lote_stays(
    lote_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Residency history of the lote, oldest first."""
    with service_errors(db):
        lote = lote_service.get_lote(db, ctx.organization_id, lote_id)
    return get_stays(db, [lote.id])


@router.get("/lotes/{lote_id}/audit", response_model=List[AuditLogResponse])
async def get_lote_audit(
    lote_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Audit entries of the lote and of its stays."""
    with service_errors(db):
        lote = lote_service.get_lote(db, ctx.organization_id, lote_id)

    entries = list(audit.get_entity_history(db, "lote", lote.id))
    for stay in get_stays(db, [lote.id]):
        entries.extend(audit.get_entity_history(db, "stay", stay.id))
    return sorted(entries, key=lambda entry: entry.id)

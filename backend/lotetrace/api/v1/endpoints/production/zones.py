"""
Zone endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from lotetrace.api.auth import RequestContext, get_request_context
from lotetrace.core.database import get_db
from lotetrace.core.stages import zone_stages
from lotetrace.schemas.production import ZoneCreate, ZoneResponse
from lotetrace.services.production import lote_service

from .common import service_errors

router = APIRouter()


@router.post("/zones", response_model=ZoneResponse, status_code=status.HTTP_201_CREATED)
async def create_zone(
    data: ZoneCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        zone = lote_service.create_zone(db, ctx.organization_id, data)
        db.commit()
    db.refresh(zone)
    return zone


@router.get("/zones", response_model=List[ZoneResponse])
async def get_zones(
    stage: Optional[str] = None,
    include_inactive: bool = False,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    if stage is not None and stage not in zone_stages():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"stage must be one of: {', '.join(zone_stages())}",
        )
    return lote_service.list_zones(db, ctx.organization_id, stage=stage, include_inactive=include_inactive)


@router.get("/zones/{zone_id}", response_model=ZoneResponse)
async def get_zone(
    zone_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        return lote_service.get_zone(db, ctx.organization_id, zone_id, active_only=False)


@router.delete("/zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_zone(
    zone_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Soft delete: the zone keeps its history but no longer accepts movements."""
    with service_errors(db):
        lote_service.deactivate_zone(db, ctx.organization_id, zone_id)
        db.commit()
    return None

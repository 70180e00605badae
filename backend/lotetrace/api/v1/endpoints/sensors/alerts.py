"""
Alert endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lotetrace.api.auth import RequestContext, get_request_context
from lotetrace.api.errors import service_errors
from lotetrace.core.database import get_db
from lotetrace.schemas.sensors import AlertResponse, UnreadCountResponse
from lotetrace.services.sensors import sensor_service

router = APIRouter(prefix="/alerts")


@router.get("", response_model=List[AlertResponse])
async def get_alerts(
    unread_only: bool = False,
    sensor_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=1000),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return sensor_service.list_alerts(
        db, ctx.organization_id, unread_only=unread_only, sensor_id=sensor_id, limit=limit
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return UnreadCountResponse(count=sensor_service.count_unread_alerts(db, ctx.organization_id))


@router.patch("/{alert_id}/read", response_model=AlertResponse)
async def mark_alert_read(
    alert_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        alert = sensor_service.mark_alert_read(db, ctx.organization_id, alert_id)
        db.commit()
    db.refresh(alert)
    return alert

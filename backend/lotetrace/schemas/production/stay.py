"""
Stay schemas
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class StayResponse(BaseModel):
    id: int
    lote_id: int
    zone_id: Optional[int] = None
    entry_time: datetime
    exit_time: Optional[datetime] = None
    created_by_type: str
    created_by_id: Optional[str] = None

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    id: int
    actor_type: str
    actor_id: Optional[str] = None
    entity_type: str
    entity_id: int
    action: str
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True

"""
Traceability snapshot schemas
"""
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class QrSnapshotResponse(BaseModel):
    id: int
    lote_id: int
    public_token: str
    url: str
    scan_count: int
    is_active: bool
    created_by_type: str
    created_at: Optional[datetime] = None


class PublicTraceResponse(BaseModel):
    lote: Dict[str, Any]
    phases: list
    metadata: Dict[str, Any]
    scan_count: int

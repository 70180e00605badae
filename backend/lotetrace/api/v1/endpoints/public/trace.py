"""
Pagina pubblica di tracciabilità (QR code)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lotetrace.api.errors import service_errors
from lotetrace.core.database import get_db
from lotetrace.schemas.traceability import PublicTraceResponse
from lotetrace.services.traceability.trace_resolver import resolve_token

router = APIRouter()


@router.get("/trace/{token}", response_model=PublicTraceResponse)
async def get_public_trace(token: str, db: Session = Depends(get_db)):
    """Frozen traceability document behind a QR code; each call counts as a scan."""
    with service_errors(db):
        snapshot = resolve_token(db, token)
        db.commit()

    document = snapshot.snapshot_data or {}
    return PublicTraceResponse(
        lote=document.get("lote", {}),
        phases=document.get("phases", []),
        metadata=document.get("metadata", {}),
        scan_count=snapshot.scan_count,
    )

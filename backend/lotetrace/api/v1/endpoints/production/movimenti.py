"""
Movimentazioni endpoints
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lotetrace.api.auth import RequestContext, get_request_context
from lotetrace.core.database import get_db
from lotetrace.schemas.production import (
    ConsistencyReport,
    MoveRequest,
    MoveResponse,
    QrSnapshotLink,
    SubLoteSummary,
)
from lotetrace.services.production import movement_service
from lotetrace.services.production.consistency_service import find_integrity_violations
from lotetrace.services.traceability.snapshot_service import public_url

from .common import service_errors

logger = logging.getLogger(__name__)

router = APIRouter()


def _message(result: movement_service.MovementResult) -> str:
    if result.is_split:
        return f"Lote split into {len(result.children)} sub-lotes at {result.stage}"
    if result.finished:
        return "Lote finished"
    return f"Lote moved to {result.stage}"


@router.post("/lotes/{lote_id}/move", response_model=MoveResponse)
async def move_lote(
    lote_id: int,
    request: MoveRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Move a lote to a zone of a later stage, or finish it.

    Arriving at curing with `sub_lotes` splits the lote; arriving at
    distribution with `generate_trace` publishes the traceability snapshot.
    """
    with service_errors(db):
        result = movement_service.move_lote(
            db,
            ctx.organization_id,
            lote_id,
            request.target,
            request.entry_time,
            sub_lotes=request.sub_lotes,
            generate_trace=request.generate_trace,
            actor=ctx.actor,
        )

    snapshot = None
    if result.snapshot is not None:
        snapshot = QrSnapshotLink(
            id=result.snapshot.id,
            token=result.snapshot.public_token,
            url=public_url(result.snapshot.public_token),
        )

    return MoveResponse(
        message=_message(result),
        lote_id=result.lote.id,
        stage=result.stage,
        lote_status=result.lote.status,
        sub_lotes=[
            SubLoteSummary(
                id=child.id,
                identification=child.identification,
                initial_animals=child.initial_animals,
                piece_type=child.piece_type,
            )
            for child in result.children
        ],
        qr_snapshot=snapshot,
    )


@router.get("/consistency", response_model=ConsistencyReport)
async def check_consistency(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Lotes violating the stay invariants (should always be empty)."""
    return find_integrity_violations(db, ctx.organization_id)

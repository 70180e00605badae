"""
Movement coordinator

Moves a lote to its next zone (or to the finished state) as one transaction:
close the current stay, open the next one or split into sub-lotes, record the
audit trail and optionally publish the traceability snapshot. Movements of the
same lote are serialized by an in-process lock plus a row lock on the lote.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from lotetrace.core.actor import Actor
from lotetrace.core.stages import (
    FINISHED,
    SPLIT_STAGE,
    TRACE_STAGE,
    UNASSIGNED,
    is_forward,
)
from lotetrace.models.production import Lote, LoteStatus, Stay, Zone
from lotetrace.models.traceability import QrSnapshot
from lotetrace.schemas.production import SubLoteSpec
from lotetrace.services.errors import MovementValidationError, NotFoundError
from lotetrace.services.production import audit
from lotetrace.services.production.lote_service import get_zone
from lotetrace.services.production.locks import lote_locks
from lotetrace.services.production.stay_ledger import (
    close_stay,
    get_open_stay,
    get_stays,
    latest_boundary,
    open_stay,
)
from lotetrace.services.traceability.snapshot_service import create_snapshot
from lotetrace.utils.dates import isoformat, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

Target = Union[int, str]


@dataclass
class MovementResult:
    lote: Lote
    stage: str
    closed_stay: Optional[Stay] = None
    opened_stays: List[Stay] = field(default_factory=list)
    children: List[Lote] = field(default_factory=list)
    finished: bool = False
    snapshot: Optional[QrSnapshot] = None

    @property
    def is_split(self) -> bool:
        return bool(self.children)


def _lock_lote_row(db: Session, organization_id: int, lote_id: int) -> Lote:
    lote = (
        db.query(Lote)
        .filter(Lote.id == lote_id, Lote.organization_id == organization_id)
        .with_for_update()
        .first()
    )
    if lote is None:
        raise NotFoundError("Lote not found")
    return lote


def _resolve_target(db: Session, organization_id: int, target: Target):
    if target == FINISHED:
        return FINISHED, None
    if isinstance(target, bool) or not isinstance(target, int):
        raise MovementValidationError(f"Invalid movement target '{target}'")
    zone = get_zone(db, organization_id, target)
    return zone.stage, zone


def _set_status(db: Session, lote: Lote, status: str, actor: Actor, reason: str):
    old_state = audit.lote_state(lote)
    lote.status = status
    db.flush()
    audit.record_change(
        db,
        organization_id=lote.organization_id,
        actor=actor,
        entity_type="lote",
        entity_id=lote.id,
        action="status_change",
        old_data=old_state,
        new_data={**audit.lote_state(lote), "reason": reason},
    )


def _open_and_audit(db: Session, lote: Lote, zone: Zone, entry_time: datetime, actor: Actor) -> Stay:
    stay = open_stay(db, lote, zone, entry_time, actor)
    audit.record_change(
        db,
        organization_id=lote.organization_id,
        actor=actor,
        entity_type="stay",
        entity_id=stay.id,
        action="stay_open",
        new_data=audit.stay_state(stay),
    )
    return stay


def _split(
    db: Session,
    parent: Lote,
    zone: Zone,
    specs: Sequence[SubLoteSpec],
    entry_time: datetime,
    actor: Actor,
    result: MovementResult,
):
    for spec in specs:
        child = Lote(
            organization_id=parent.organization_id,
            identification=spec.identification,
            initial_animals=spec.quantity,
            food_regime=parent.food_regime,
            custom_data=dict(parent.custom_data or {}),
            status=LoteStatus.ACTIVE.value,
            parent_lote_id=parent.id,
            piece_type=spec.piece_type,
        )
        db.add(child)
        db.flush()
        audit.record_change(
            db,
            organization_id=parent.organization_id,
            actor=actor,
            entity_type="lote",
            entity_id=child.id,
            action="split_create",
            new_data={**audit.lote_state(child), "zone_id": zone.id},
        )
        result.children.append(child)
        result.opened_stays.append(_open_and_audit(db, child, zone, entry_time, actor))

    _set_status(db, parent, LoteStatus.FINISHED.value, actor, reason="split")
    result.finished = True
    logger.info(
        "Lote %s split into %d sub-lotes at zone %s (%s)",
        parent.id, len(specs), zone.id, ", ".join(str(child.id) for child in result.children),
    )


def move_lote(
    db: Session,
    organization_id: int,
    lote_id: int,
    target: Target,
    entry_time: datetime,
    *,
    sub_lotes: Optional[Sequence[SubLoteSpec]] = None,
    generate_trace: bool = False,
    actor: Actor,
) -> MovementResult:
    """
    Move a lote to the target zone id, or to "finished".

    Raises NotFoundError for unknown lote/zone and MovementValidationError when
    the ordering or chronology rules reject the move. The session is committed
    on success and rolled back on any failure.
    """
    entry_time = to_naive_utc(entry_time)
    if entry_time is None:
        raise MovementValidationError("entry_time is required")

    with lote_locks.hold(lote_id):
        try:
            lote = _lock_lote_row(db, organization_id, lote_id)
            if lote.is_finished:
                raise MovementValidationError(f"Lote {lote.id} is finished and cannot be moved")

            target_stage, zone = _resolve_target(db, organization_id, target)

            current = get_open_stay(db, lote.id)
            current_stage = current.zone.stage if current is not None and current.zone is not None else UNASSIGNED

            if not is_forward(current_stage, target_stage):
                raise MovementValidationError(
                    f"Cannot move lote {lote.id} from {current_stage} to {target_stage}: "
                    f"stages only move forward"
                )

            boundary = latest_boundary(get_stays(db, [lote.id]))
            if boundary is not None and entry_time < boundary:
                raise MovementValidationError(
                    f"entry_time {isoformat(entry_time)} is earlier than the last recorded "
                    f"movement of lote {lote.id} ({isoformat(boundary)})"
                )

            result = MovementResult(lote=lote, stage=target_stage)

            if current is not None:
                old_state = audit.stay_state(current)
                result.closed_stay = close_stay(db, current, entry_time)
                audit.record_change(
                    db,
                    organization_id=organization_id,
                    actor=actor,
                    entity_type="stay",
                    entity_id=current.id,
                    action="stay_close",
                    old_data=old_state,
                    new_data=audit.stay_state(current),
                )

            specs = list(sub_lotes or [])
            if specs and target_stage != SPLIT_STAGE:
                logger.warning(
                    "Ignoring %d sub-lote specs for lote %s: splits only happen on arrival at %s",
                    len(specs), lote.id, SPLIT_STAGE,
                )
                specs = []

            if specs:
                _split(db, lote, zone, specs, entry_time, actor, result)
            elif target_stage == FINISHED:
                _set_status(db, lote, LoteStatus.FINISHED.value, actor, reason="finished")
                result.finished = True
            else:
                result.opened_stays.append(_open_and_audit(db, lote, zone, entry_time, actor))

            if generate_trace and target_stage == TRACE_STAGE:
                result.snapshot = create_snapshot(db, lote, actor, as_of=max(utcnow(), entry_time))

            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info(
        "Lote %s moved %s -> %s at %s by %s",
        lote_id, current_stage, target_stage, isoformat(entry_time), actor,
    )
    return result

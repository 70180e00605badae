"""
Stay ledger - append/close primitives over the stays table
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, joinedload

from lotetrace.core.actor import Actor
from lotetrace.models.production import Lote, Stay, Zone
from lotetrace.services.errors import StayConflictError


def get_open_stay(db: Session, lote_id: int) -> Optional[Stay]:
    """The stay with no exit time, if the lote currently has one."""
    return (
        db.query(Stay)
        .options(joinedload(Stay.zone))
        .filter(Stay.lote_id == lote_id, Stay.exit_time.is_(None))
        .order_by(Stay.entry_time.desc(), Stay.id.desc())
        .first()
    )


def get_stays(db: Session, lote_ids: Iterable[int]) -> List[Stay]:
    """All stays of the given lotes, oldest entry first."""
    ids = list(lote_ids)
    if not ids:
        return []
    return (
        db.query(Stay)
        .options(joinedload(Stay.zone))
        .filter(Stay.lote_id.in_(ids))
        .order_by(Stay.entry_time.asc(), Stay.id.asc())
        .all()
    )


def latest_boundary(stays: Iterable[Stay]) -> Optional[datetime]:
    """Latest instant already covered by the stays (exit time, or entry time if still open)."""
    boundary = None
    for stay in stays:
        edge = stay.exit_time if stay.exit_time is not None else stay.entry_time
        if boundary is None or edge > boundary:
            boundary = edge
    return boundary


def open_stay(db: Session, lote: Lote, zone: Optional[Zone], entry_time: datetime, actor: Actor) -> Stay:
    if get_open_stay(db, lote.id) is not None:
        raise StayConflictError(f"Lote {lote.id} already has an open stay")

    stay = Stay(
        lote_id=lote.id,
        zone_id=zone.id if zone is not None else None,
        entry_time=entry_time,
        exit_time=None,
        created_by_type=actor.type.value,
        created_by_id=actor.user_id,
    )
    stay.zone = zone
    db.add(stay)
    db.flush()
    return stay


def close_stay(db: Session, stay: Stay, exit_time: datetime) -> Stay:
    if stay.exit_time is not None:
        raise StayConflictError(f"Stay {stay.id} is already closed")
    if exit_time < stay.entry_time:
        raise StayConflictError(f"Stay {stay.id} cannot close before it opened")
    stay.exit_time = exit_time
    db.flush()
    return stay

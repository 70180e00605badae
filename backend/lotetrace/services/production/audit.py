"""
Audit trail for state changes
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from lotetrace.core.actor import Actor
from lotetrace.models.production import AuditLog, Lote, Stay
from lotetrace.utils.dates import isoformat


def lote_state(lote: Lote) -> Dict[str, Any]:
    return {
        "identification": lote.identification,
        "status": lote.status,
        "initial_animals": lote.initial_animals,
        "parent_lote_id": lote.parent_lote_id,
        "piece_type": lote.piece_type,
    }


def stay_state(stay: Stay) -> Dict[str, Any]:
    return {
        "lote_id": stay.lote_id,
        "zone_id": stay.zone_id,
        "entry_time": isoformat(stay.entry_time),
        "exit_time": isoformat(stay.exit_time),
    }


def record_change(
    db: Session,
    *,
    organization_id: int,
    actor: Actor,
    entity_type: str,
    entity_id: int,
    action: str,
    old_data: Optional[Dict[str, Any]] = None,
    new_data: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Add an audit entry to the current transaction (flushed with it)."""
    entry = AuditLog(
        organization_id=organization_id,
        actor_type=actor.type.value,
        actor_id=actor.user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_data=old_data,
        new_data=new_data,
    )
    db.add(entry)
    return entry


def get_entity_history(db: Session, entity_type: str, entity_id: int):
    return (
        db.query(AuditLog)
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.id.asc())
        .all()
    )

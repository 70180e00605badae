"""
Servizio lotti e zone
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from lotetrace.core.actor import Actor
from lotetrace.core.stages import UNASSIGNED
from lotetrace.models.production import Lote, Organization, Zone
from lotetrace.schemas.production import LoteCreate, ZoneCreate
from lotetrace.services.errors import NotFoundError
from lotetrace.services.production import audit
from lotetrace.services.production.stay_ledger import get_open_stay

logger = logging.getLogger(__name__)


def get_organization(db: Session, organization_id: int) -> Organization:
    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if organization is None:
        raise NotFoundError("Organization not found")
    return organization


def get_lote(db: Session, organization_id: int, lote_id: int) -> Lote:
    """Lote of the organization, or NotFoundError (also for lotes of other organizations)."""
    lote = (
        db.query(Lote)
        .filter(Lote.id == lote_id, Lote.organization_id == organization_id)
        .first()
    )
    if lote is None:
        raise NotFoundError("Lote not found")
    return lote


def list_lotes(
    db: Session,
    organization_id: int,
    status: Optional[str] = None,
    parent_lote_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Lote]:
    query = db.query(Lote).filter(Lote.organization_id == organization_id)

    if status:
        query = query.filter(Lote.status == status)

    if parent_lote_id is not None:
        query = query.filter(Lote.parent_lote_id == parent_lote_id)

    return query.order_by(Lote.id.asc()).offset(skip).limit(limit).all()


def create_lote(db: Session, organization_id: int, data: LoteCreate, actor: Actor) -> Lote:
    get_organization(db, organization_id)
    lote = Lote(organization_id=organization_id, **data.model_dump())
    db.add(lote)
    db.flush()
    audit.record_change(
        db,
        organization_id=organization_id,
        actor=actor,
        entity_type="lote",
        entity_id=lote.id,
        action="create",
        new_data=audit.lote_state(lote),
    )
    logger.info("Lote %s '%s' created by %s", lote.id, lote.identification, actor)
    return lote


def current_position(db: Session, lote: Lote) -> Tuple[str, Optional[int]]:
    """(stage, zone id) of the lote's open stay; unassigned when it has none."""
    stay = get_open_stay(db, lote.id)
    if stay is None or stay.zone is None:
        return UNASSIGNED, None
    return stay.zone.stage, stay.zone_id


def get_zone(db: Session, organization_id: int, zone_id: int, active_only: bool = True) -> Zone:
    query = db.query(Zone).filter(Zone.id == zone_id, Zone.organization_id == organization_id)
    if active_only:
        query = query.filter(Zone.is_active.is_(True))
    zone = query.first()
    if zone is None:
        raise NotFoundError("Zone not found")
    return zone


def list_zones(
    db: Session,
    organization_id: int,
    stage: Optional[str] = None,
    include_inactive: bool = False,
) -> List[Zone]:
    query = db.query(Zone).filter(Zone.organization_id == organization_id)

    if stage:
        query = query.filter(Zone.stage == stage)

    if not include_inactive:
        query = query.filter(Zone.is_active.is_(True))

    return query.order_by(Zone.name.asc(), Zone.id.asc()).all()


def create_zone(db: Session, organization_id: int, data: ZoneCreate) -> Zone:
    get_organization(db, organization_id)
    zone = Zone(
        organization_id=organization_id,
        name=data.name,
        stage=data.stage,
        fixed_info=data.fixed_info,
        targets={metric: target.model_dump() for metric, target in data.targets.items()},
    )
    db.add(zone)
    db.flush()
    return zone


def deactivate_zone(db: Session, organization_id: int, zone_id: int) -> Zone:
    """
    Soft delete: the zone stops accepting movements but keeps its history.
    Stays already open in it are left alone.
    """
    zone = get_zone(db, organization_id, zone_id)
    zone.is_active = False
    db.flush()
    return zone

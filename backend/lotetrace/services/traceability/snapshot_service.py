"""
Traceability snapshot service

Reduces the residency history of a lote (merged with its parent's when the
lote is a split-off piece) and the sensor readings of the zones it visited
into one frozen document, published under a random public token.
"""
import logging
import secrets
from collections import OrderedDict, defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, joinedload

from lotetrace.core.actor import Actor
from lotetrace.core.config import settings
from lotetrace.core.stages import stage_index
from lotetrace.models.production import Lote, Stay
from lotetrace.models.sensors import Sensor, SensorReading
from lotetrace.models.traceability import QrSnapshot
from lotetrace.services.errors import NotFoundError
from lotetrace.services.production.stay_ledger import get_stays
from lotetrace.utils.dates import isoformat, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400
_ONE_DECIMAL = Decimal("0.1")


def _round1(value: float) -> float:
    return float(Decimal(str(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def _round_int(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def load_lineage_stays(db: Session, lote: Lote) -> List[Stay]:
    """
    Stays of the lote plus, for a sub-lote, the stays of its parent.

    Pre-split phases live on the parent, post-split phases on the child; the
    merged list is sorted by entry time.
    """
    lote_ids = [lote.id]
    if lote.parent_lote_id is not None:
        lote_ids.append(lote.parent_lote_id)
    stays = get_stays(db, lote_ids)
    return sorted(stays, key=lambda s: (s.entry_time, s.id))


def group_stays_by_stage(stays: Sequence[Stay]) -> List[Tuple[str, List[Stay]]]:
    """Group zoned stays by stage, groups in registry order (not discovery order)."""
    groups: Dict[str, List[Stay]] = defaultdict(list)
    for stay in stays:
        if stay.zone is None:
            continue
        groups[stay.zone.stage].append(stay)
    return [(stage, groups[stage]) for stage in sorted(groups, key=stage_index)]


def _phase_readings(
    db: Session, zone_ids: Sequence[int], start: datetime, end: datetime
) -> List[Tuple[SensorReading, Sensor]]:
    if not zone_ids:
        return []
    return (
        db.query(SensorReading, Sensor)
        .join(Sensor, SensorReading.sensor_id == Sensor.id)
        .options(joinedload(Sensor.zone))
        .filter(
            Sensor.zone_id.in_(list(zone_ids)),
            Sensor.is_public.is_(True),
            SensorReading.is_simulated.is_(False),
            SensorReading.timestamp >= start,
            SensorReading.timestamp <= end,
        )
        .order_by(SensorReading.timestamp.asc(), SensorReading.id.asc())
        .all()
    )


def compute_metrics(rows: Sequence[Tuple[SensorReading, Sensor]]) -> Dict[str, dict]:
    """
    Per sensor type: avg/min/max (one decimal), count and, when the reading's
    zone defines a target range for that type, the share of readings in range.
    """
    values: Dict[str, List[float]] = defaultdict(list)
    in_target: Dict[str, List[bool]] = defaultdict(list)

    for reading, sensor in rows:
        value = float(reading.value)
        values[sensor.sensor_type].append(value)
        target = sensor.zone.target_for(sensor.sensor_type) if sensor.zone is not None else None
        if target is not None:
            low, high = target
            in_target[sensor.sensor_type].append(low <= value <= high)

    metrics: Dict[str, dict] = OrderedDict()
    for sensor_type in sorted(values):
        series = values[sensor_type]
        entry = {
            "avg": _round1(sum(series) / len(series)),
            "min": _round1(min(series)),
            "max": _round1(max(series)),
            "count": len(series),
        }
        checks = in_target.get(sensor_type)
        if checks:
            entry["pctInTarget"] = _round_int(100 * sum(checks) / len(checks))
        metrics[sensor_type] = entry
    return metrics


def build_phases(db: Session, stays: Sequence[Stay], as_of: datetime) -> List[dict]:
    phases = []
    for stage, group in group_stays_by_stage(stays):
        start = min(stay.entry_time for stay in group)
        end = max(stay.exit_time if stay.exit_time is not None else as_of for stay in group)
        if end < start:
            end = start

        zone_names: List[str] = []
        zone_ids: List[int] = []
        for stay in group:
            if stay.zone.name not in zone_names:
                zone_names.append(stay.zone.name)
            if stay.zone_id not in zone_ids:
                zone_ids.append(stay.zone_id)

        rows = _phase_readings(db, zone_ids, start, end)
        phases.append(
            {
                "stage": stage,
                "zones": zone_names,
                "startTime": isoformat(start),
                "endTime": isoformat(end),
                "duration": int((end - start).total_seconds() // _SECONDS_PER_DAY),
                "metrics": compute_metrics(rows),
            }
        )
    return phases


def build_snapshot_document(
    db: Session,
    lote: Lote,
    as_of: Optional[datetime] = None,
    generated_at: Optional[datetime] = None,
) -> dict:
    """The traceability document for a lote; `as_of` stands in for open stays' end."""
    as_of = to_naive_utc(as_of) or utcnow()
    stays = load_lineage_stays(db, lote)

    return {
        "lote": {
            "id": lote.id,
            "name": lote.identification,
            "regime": lote.food_regime,
            "initialAnimals": lote.initial_animals,
            "finalAnimals": lote.final_animals,
            "pieceType": lote.piece_type,
            "parentLoteId": lote.parent_lote_id,
            "customData": dict(lote.custom_data or {}),
        },
        "phases": build_phases(db, stays, as_of),
        "metadata": {
            "generatedAt": isoformat(generated_at or utcnow()),
            "version": settings.SNAPSHOT_VERSION,
        },
    }


def new_public_token() -> str:
    return secrets.token_urlsafe(24)


def public_url(token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/trace/{token}"


def create_snapshot(db: Session, lote: Lote, actor: Actor, as_of: Optional[datetime] = None) -> QrSnapshot:
    """Persist a new snapshot row; earlier snapshots of the lote are left untouched."""
    document = build_snapshot_document(db, lote, as_of=as_of)
    snapshot = QrSnapshot(
        lote_id=lote.id,
        public_token=new_public_token(),
        snapshot_data=document,
        scan_count=0,
        is_active=True,
        created_by_type=actor.type.value,
        created_by_id=actor.user_id,
    )
    db.add(snapshot)
    db.flush()
    logger.info(
        "Snapshot %s created for lote %s with %d phases by %s",
        snapshot.id, lote.id, len(document["phases"]), actor,
    )
    return snapshot


def get_snapshot(db: Session, organization_id: int, snapshot_id: int) -> QrSnapshot:
    snapshot = (
        db.query(QrSnapshot)
        .join(Lote, QrSnapshot.lote_id == Lote.id)
        .filter(QrSnapshot.id == snapshot_id, Lote.organization_id == organization_id)
        .first()
    )
    if snapshot is None:
        raise NotFoundError("Snapshot not found")
    return snapshot


def list_snapshots(db: Session, organization_id: int, lote_id: Optional[int] = None) -> List[QrSnapshot]:
    query = (
        db.query(QrSnapshot)
        .join(Lote, QrSnapshot.lote_id == Lote.id)
        .filter(Lote.organization_id == organization_id)
    )
    if lote_id is not None:
        query = query.filter(QrSnapshot.lote_id == lote_id)
    return query.order_by(QrSnapshot.id.desc()).all()


def rotate_snapshot(db: Session, organization_id: int, snapshot_id: int) -> QrSnapshot:
    """New public token for the same stored document; the old token stops resolving."""
    snapshot = get_snapshot(db, organization_id, snapshot_id)
    old_token = snapshot.public_token
    snapshot.public_token = new_public_token()
    db.flush()
    logger.info("Snapshot %s token rotated (old prefix %s)", snapshot.id, old_token[:6])
    return snapshot


def revoke_snapshot(db: Session, organization_id: int, snapshot_id: int) -> QrSnapshot:
    snapshot = get_snapshot(db, organization_id, snapshot_id)
    snapshot.is_active = False
    db.flush()
    logger.info("Snapshot %s revoked", snapshot.id)
    return snapshot

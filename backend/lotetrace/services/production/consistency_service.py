"""
Integrity checks over the stays table
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from lotetrace.models.production import Lote, Stay
from lotetrace.schemas.production import ConsistencyReport, IntegrityViolation
from lotetrace.utils.dates import isoformat

logger = logging.getLogger(__name__)

MULTIPLE_OPEN_STAYS = "multiple_open_stays"
FINISHED_WITH_OPEN_STAY = "finished_with_open_stay"
EXIT_BEFORE_ENTRY = "exit_before_entry"


def find_integrity_violations(db: Session, organization_id: Optional[int] = None) -> ConsistencyReport:
    """
    Lotes breaking the stay invariants: more than one open stay, an open stay
    on a finished lote, or a stay that closes before it opens.
    """
    lote_query = db.query(Lote)
    if organization_id is not None:
        lote_query = lote_query.filter(Lote.organization_id == organization_id)
    lotes: Dict[int, Lote] = {lote.id: lote for lote in lote_query.all()}

    stays: List[Stay] = []
    if lotes:
        stays = (
            db.query(Stay)
            .filter(Stay.lote_id.in_(list(lotes)))
            .order_by(Stay.lote_id.asc(), Stay.entry_time.asc(), Stay.id.asc())
            .all()
        )

    open_by_lote: Dict[int, List[Stay]] = defaultdict(list)
    violations: List[IntegrityViolation] = []

    for stay in stays:
        if stay.exit_time is None:
            open_by_lote[stay.lote_id].append(stay)
        elif stay.exit_time < stay.entry_time:
            violations.append(
                IntegrityViolation(
                    lote_id=stay.lote_id,
                    kind=EXIT_BEFORE_ENTRY,
                    detail=f"stay {stay.id} exits at {isoformat(stay.exit_time)} before entering at {isoformat(stay.entry_time)}",
                )
            )

    for lote_id in sorted(open_by_lote):
        open_stays = open_by_lote[lote_id]
        if len(open_stays) > 1:
            violations.append(
                IntegrityViolation(
                    lote_id=lote_id,
                    kind=MULTIPLE_OPEN_STAYS,
                    detail=f"{len(open_stays)} open stays: {', '.join(str(s.id) for s in open_stays)}",
                )
            )
        if lotes[lote_id].is_finished:
            violations.append(
                IntegrityViolation(
                    lote_id=lote_id,
                    kind=FINISHED_WITH_OPEN_STAY,
                    detail=f"finished lote still has open stay {open_stays[0].id}",
                )
            )

    if violations:
        logger.warning("Consistency check found %d violations over %d lotes", len(violations), len(lotes))
    return ConsistencyReport(checked_lotes=len(lotes), violations=violations)

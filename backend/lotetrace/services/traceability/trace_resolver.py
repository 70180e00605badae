"""
Public resolution of published snapshots
"""
from sqlalchemy import update
from sqlalchemy.orm import Session

from lotetrace.models.traceability import QrSnapshot
from lotetrace.services.errors import NotFoundError


def resolve_token(db: Session, token: str) -> QrSnapshot:
    """
    Active snapshot for a public token, counting the scan.

    The counter is bumped with a single UPDATE so concurrent scans do not
    overwrite each other; it is still best effort (no dedup of repeated scans).
    """
    snapshot = (
        db.query(QrSnapshot)
        .filter(QrSnapshot.public_token == token, QrSnapshot.is_active.is_(True))
        .first()
    )
    if snapshot is None:
        raise NotFoundError("Traceability code not valid or revoked")

    db.execute(
        update(QrSnapshot)
        .where(QrSnapshot.id == snapshot.id)
        .values(scan_count=QrSnapshot.scan_count + 1)
        .execution_options(synchronize_session=False)
    )
    db.refresh(snapshot)
    return snapshot

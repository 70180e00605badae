from lotetrace.core.actor import Actor
from lotetrace.models import Stay
from lotetrace.services.production.consistency_service import (
    EXIT_BEFORE_ENTRY,
    FINISHED_WITH_OPEN_STAY,
    find_integrity_violations,
)
from lotetrace.services.production.movement_service import move_lote


def test_clean_history_has_no_violations(db, org, zones, make_lote, t):
    lote = make_lote()
    move_lote(db, org.id, lote.id, zones["breeding"].id, t(0), actor=Actor.system())
    move_lote(db, org.id, lote.id, "finished", t(1), actor=Actor.system())

    report = find_integrity_violations(db, org.id)

    assert report.checked_lotes == 1
    assert report.ok


def test_detects_corrupted_rows(db, org, zones, make_lote, t):
    finished = make_lote(identification="F", status="finished")
    reversed_stay = make_lote(identification="R")
    db.add(Stay(lote_id=finished.id, zone_id=zones["curing"].id, entry_time=t(0)))
    db.add(Stay(lote_id=reversed_stay.id, zone_id=zones["breeding"].id, entry_time=t(5), exit_time=t(2)))
    db.commit()

    report = find_integrity_violations(db)

    kinds = {(v.lote_id, v.kind) for v in report.violations}
    assert kinds == {(finished.id, FINISHED_WITH_OPEN_STAY), (reversed_stay.id, EXIT_BEFORE_ENTRY)}


def test_scoped_to_organization(db, org, other_org, zones, make_lote, t):
    finished = make_lote(status="finished")
    db.add(Stay(lote_id=finished.id, zone_id=zones["curing"].id, entry_time=t(0)))
    db.commit()

    assert find_integrity_violations(db, other_org.id).ok
    assert not find_integrity_violations(db, org.id).ok

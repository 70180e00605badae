from decimal import Decimal

import pytest

from lotetrace.core.actor import Actor
from lotetrace.models import QrSnapshot, SensorReading, Stay
from lotetrace.schemas.production import SubLoteSpec
from lotetrace.services.errors import NotFoundError
from lotetrace.services.production.movement_service import move_lote
from lotetrace.services.traceability import snapshot_service
from lotetrace.services.traceability.trace_resolver import resolve_token


def _stay(db, lote, zone, entry, exit_=None):
    stay = Stay(lote_id=lote.id, zone_id=zone.id if zone else None, entry_time=entry, exit_time=exit_)
    db.add(stay)
    db.commit()
    return stay


def _reading(db, sensor, value, at, simulated=False):
    db.add(SensorReading(sensor_id=sensor.id, value=Decimal(str(value)), timestamp=at, is_simulated=simulated))
    db.commit()


def test_phases_follow_registry_order(db, zones, make_lote, t):
    lote = make_lote()
    # persisted out of order on purpose
    _stay(db, lote, zones["distribution"], t(20), t(25))
    _stay(db, lote, zones["breeding"], t(0), t(10))
    _stay(db, lote, zones["fattening"], t(10), t(20))

    document = snapshot_service.build_snapshot_document(db, lote, as_of=t(30))

    assert [phase["stage"] for phase in document["phases"]] == ["breeding", "fattening", "distribution"]


def test_phase_boundaries_and_duration(db, zones, make_zone, make_lote, t):
    second_fattening = make_zone("fattening", name="Fattening B")
    lote = make_lote()
    _stay(db, lote, zones["fattening"], t(0), t(4, hour=12))
    _stay(db, lote, second_fattening, t(4, hour=12), t(9, hour=6))
    _stay(db, lote, None, t(9, hour=6), t(9, hour=7))

    document = snapshot_service.build_snapshot_document(db, lote, as_of=t(30))

    (phase,) = document["phases"]
    assert phase["stage"] == "fattening"
    assert phase["zones"] == ["Fattening zone", "Fattening B"]
    assert phase["startTime"] == "2025-01-01T00:00:00Z"
    assert phase["endTime"] == "2025-01-10T06:00:00Z"
    assert phase["duration"] == 9


def test_open_stay_ends_at_as_of(db, zones, make_lote, t):
    lote = make_lote()
    _stay(db, lote, zones["curing"], t(0))

    document = snapshot_service.build_snapshot_document(db, lote, as_of=t(3, hour=5))

    assert document["phases"][0]["endTime"] == "2025-01-04T05:00:00Z"
    assert document["phases"][0]["duration"] == 3


def test_metrics_filter_and_target_percentage(db, make_zone, make_sensor, make_lote, t):
    zone = make_zone("breeding", targets={"temperature": {"min": 15, "max": 30}})
    lote = make_lote()
    _stay(db, lote, zone, t(0), t(10))

    public = make_sensor(zone, "temperature")
    private = make_sensor(zone, "temperature", is_public=False)
    humidity = make_sensor(zone, "humidity", unit="%")

    for value in (10, 20, 31):
        _reading(db, public, value, t(1))
    _reading(db, public, 100, t(2), simulated=True)
    _reading(db, public, -50, t(11))
    _reading(db, private, 90, t(2))
    _reading(db, humidity, 70.26, t(3))

    metrics = snapshot_service.build_snapshot_document(db, lote, as_of=t(30))["phases"][0]["metrics"]

    assert list(metrics) == ["humidity", "temperature"]
    assert metrics["temperature"] == {"avg": 20.3, "min": 10.0, "max": 31.0, "count": 3, "pctInTarget": 33}
    assert metrics["humidity"] == {"avg": 70.3, "min": 70.3, "max": 70.3, "count": 1}


def test_regeneration_with_same_as_of_is_identical(db, zones, make_sensor, make_lote, t):
    lote = make_lote()
    _stay(db, lote, zones["breeding"], t(0), t(5))
    _stay(db, lote, zones["fattening"], t(5))
    sensor = make_sensor(zones["fattening"])
    _reading(db, sensor, 18.5, t(6))

    first = snapshot_service.build_snapshot_document(db, lote, as_of=t(8))
    second = snapshot_service.build_snapshot_document(db, lote, as_of=t(8))

    assert first["phases"] == second["phases"]


def test_sub_lote_inherits_parent_phases(db, org, zones, make_lote, t):
    parent = make_lote(identification="P-1", initial_animals=100)
    actor = Actor.system()
    for day, stage in ((0, "breeding"), (10, "fattening"), (20, "slaughter")):
        move_lote(db, org.id, parent.id, zones[stage].id, t(day), actor=actor)
    result = move_lote(
        db, org.id, parent.id, zones["curing"].id, t(21), actor=actor,
        sub_lotes=[SubLoteSpec(identification="C1", quantity=60), SubLoteSpec(identification="C2", quantity=40)],
    )
    c1 = result.children[0]

    document = snapshot_service.build_snapshot_document(db, c1, as_of=t(40))

    assert [phase["stage"] for phase in document["phases"]] == ["breeding", "fattening", "slaughter", "curing"]
    assert document["lote"]["name"] == "C1"
    assert document["lote"]["initialAnimals"] == 60
    assert document["lote"]["parentLoteId"] == parent.id
    assert document["lote"]["regime"] == "acorn"


def test_create_rotate_revoke(db, org, zones, make_lote, t):
    lote = make_lote()
    _stay(db, lote, zones["distribution"], t(0))

    snapshot = snapshot_service.create_snapshot(db, lote, Actor.user("u-1"), as_of=t(1))
    db.commit()
    first_token = snapshot.public_token
    assert snapshot.created_by_type == "user"
    assert snapshot_service.public_url(first_token).endswith(f"/trace/{first_token}")

    data_before = snapshot.snapshot_data
    snapshot_service.rotate_snapshot(db, org.id, snapshot.id)
    db.commit()
    assert snapshot.public_token != first_token
    assert snapshot.snapshot_data == data_before

    with pytest.raises(NotFoundError):
        resolve_token(db, first_token)
    assert resolve_token(db, snapshot.public_token).id == snapshot.id

    snapshot_service.revoke_snapshot(db, org.id, snapshot.id)
    db.commit()
    with pytest.raises(NotFoundError):
        resolve_token(db, snapshot.public_token)


def test_regeneration_keeps_older_snapshots(db, zones, make_lote, t):
    lote = make_lote()
    _stay(db, lote, zones["distribution"], t(0))

    first = snapshot_service.create_snapshot(db, lote, Actor.system(), as_of=t(1))
    second = snapshot_service.create_snapshot(db, lote, Actor.system(), as_of=t(2))
    db.commit()

    assert first.public_token != second.public_token
    assert db.query(QrSnapshot).filter(QrSnapshot.is_active.is_(True)).count() == 2


def test_scan_count_increments(db, zones, make_lote, t):
    lote = make_lote()
    _stay(db, lote, zones["distribution"], t(0))
    snapshot = snapshot_service.create_snapshot(db, lote, Actor.system(), as_of=t(1))
    db.commit()

    resolve_token(db, snapshot.public_token)
    resolve_token(db, snapshot.public_token)
    db.commit()

    db.refresh(snapshot)
    assert snapshot.scan_count == 2


def test_snapshot_of_other_organization_is_not_found(db, org, other_org, zones, make_lote, t):
    lote = make_lote()
    snapshot = snapshot_service.create_snapshot(db, lote, Actor.system(), as_of=t(1))
    db.commit()

    with pytest.raises(NotFoundError):
        snapshot_service.rotate_snapshot(db, other_org.id, snapshot.id)

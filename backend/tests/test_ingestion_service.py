import random
from datetime import timedelta
from decimal import Decimal

import pytest

from lotetrace.models import Alert, AlertType, SensorReading
from lotetrace.services.sensors.ingestion_service import (
    evaluate_thresholds,
    ingest_payload,
    record_reading,
    simulate_readings,
)


@pytest.fixture
def bounded_sensor(zones, make_sensor):
    return make_sensor(zones["curing"], validation_min=Decimal("5"), validation_max=Decimal("30"))


def test_thresholds_are_strict(bounded_sensor):
    assert evaluate_thresholds(bounded_sensor, 4.99) == (AlertType.MIN_BREACH, 5.0)
    assert evaluate_thresholds(bounded_sensor, 5) is None
    assert evaluate_thresholds(bounded_sensor, 30) is None
    assert evaluate_thresholds(bounded_sensor, 30.01) == (AlertType.MAX_BREACH, 30.0)


def test_unbounded_sensor_never_breaches(zones, make_sensor):
    sensor = make_sensor(zones["curing"])

    assert evaluate_thresholds(sensor, -1000) is None
    assert evaluate_thresholds(sensor, 1000) is None


def test_reading_above_max_raises_one_alert(db, bounded_sensor, t):
    reading, alert = record_reading(db, bounded_sensor, 35, timestamp=t(1))
    db.commit()

    assert alert is not None
    alerts = db.query(Alert).all()
    assert len(alerts) == 1
    assert alerts[0].type == "max_breach"
    assert float(alerts[0].value) == 35.0
    assert float(alerts[0].threshold) == 30.0
    assert alerts[0].reading_id == reading.id
    assert alerts[0].zone_id == bounded_sensor.zone_id
    assert alerts[0].organization_id == bounded_sensor.organization_id


def test_repeated_breaches_are_not_deduplicated(db, bounded_sensor, t):
    record_reading(db, bounded_sensor, 1, timestamp=t(1))
    record_reading(db, bounded_sensor, 2, timestamp=t(2))
    db.commit()

    assert db.query(Alert).filter(Alert.type == "min_breach").count() == 2


def test_ingest_payload_uses_field_path_and_timestamp(db, zones, make_sensor):
    sensor = make_sensor(zones["curing"], field_path="decoded_payload.temperature")

    reading, alert = ingest_payload(
        db,
        sensor,
        {"decoded_payload": {"temperature": "21.5"}, "timestamp": "2025-03-01T10:00:00Z"},
    )
    db.commit()

    assert float(reading.value) == 21.5
    assert reading.timestamp.isoformat() == "2025-03-01T10:00:00"
    assert reading.is_simulated is False
    assert alert is None


def test_ingest_payload_defaults_to_value_key(db, zones, make_sensor):
    sensor = make_sensor(zones["curing"])

    reading, _ = ingest_payload(db, sensor, {"value": 4})

    assert float(reading.value) == 4.0


def test_payload_without_number_is_dropped(db, zones, make_sensor):
    sensor = make_sensor(zones["curing"], field_path="data.temp")

    assert ingest_payload(db, sensor, {"data": {"temp": "n/a"}}) is None
    assert ingest_payload(db, sensor, {"value": 3}) is None
    assert ingest_payload(db, sensor, [1, 2]) is None
    assert db.query(SensorReading).count() == 0


def test_burst_simulation(db, bounded_sensor):
    results = simulate_readings(
        db, bounded_sensor, "burst", value=20, count=5, interval=60, rng=random.Random(3)
    )
    db.commit()

    readings = [reading for reading, _ in results]
    assert len(readings) == 5
    assert all(reading.is_simulated for reading in readings)
    assert all(19.0 <= float(reading.value) <= 21.0 for reading in readings)
    gaps = {readings[i + 1].timestamp - readings[i].timestamp for i in range(4)}
    assert gaps == {timedelta(seconds=60)}


def test_simulated_readings_still_raise_alerts(db, bounded_sensor):
    results = simulate_readings(db, bounded_sensor, "single", value=50)
    db.commit()

    (reading, alert), = results
    assert reading.is_simulated
    assert alert is not None and alert.type == "max_breach"


def test_range_simulation_can_be_marked_real(db, bounded_sensor):
    (reading, _), = simulate_readings(
        db, bounded_sensor, "range", min_value=10, max_value=12, mark_as_simulated=False
    )

    assert 10 <= float(reading.value) <= 12
    assert reading.is_simulated is False


def test_unknown_mode_rejected(db, bounded_sensor):
    with pytest.raises(ValueError):
        simulate_readings(db, bounded_sensor, "sine")

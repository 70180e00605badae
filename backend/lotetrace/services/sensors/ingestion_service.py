"""
Reading ingestion and threshold evaluation

Every reading, pushed over HTTP, received from a broker or simulated, goes
through record_reading: the reading and its alert (if any) are written in the
same transaction.
"""
import logging
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from sqlalchemy.orm import Session

from lotetrace.models.sensors import Alert, AlertType, Sensor, SensorReading
from lotetrace.services.sensors.field_path import DEFAULT_FIELD_PATH, FieldPath
from lotetrace.utils.dates import parse_timestamp, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

SINGLE_NOISE = 0.025
BURST_NOISE = 0.05


def evaluate_thresholds(sensor: Sensor, value: float) -> Optional[Tuple[AlertType, float]]:
    """(alert type, breached threshold), or None when the value is in range or unbounded."""
    if sensor.validation_min is not None and value < float(sensor.validation_min):
        return AlertType.MIN_BREACH, float(sensor.validation_min)
    if sensor.validation_max is not None and value > float(sensor.validation_max):
        return AlertType.MAX_BREACH, float(sensor.validation_max)
    return None


def record_reading(
    db: Session,
    sensor: Sensor,
    value: float,
    timestamp: Optional[datetime] = None,
    is_simulated: bool = False,
) -> Tuple[SensorReading, Optional[Alert]]:
    reading = SensorReading(
        sensor_id=sensor.id,
        value=Decimal(str(value)),
        timestamp=to_naive_utc(timestamp) or utcnow(),
        is_simulated=is_simulated,
    )
    db.add(reading)
    db.flush()

    alert = None
    breach = evaluate_thresholds(sensor, value)
    if breach is not None:
        alert_type, threshold = breach
        alert = Alert(
            organization_id=sensor.organization_id,
            sensor_id=sensor.id,
            zone_id=sensor.zone_id,
            reading_id=reading.id,
            type=alert_type.value,
            value=Decimal(str(value)),
            threshold=Decimal(str(threshold)),
            is_read=False,
        )
        db.add(alert)
        db.flush()
        logger.info(
            "Sensor %s %s: value %s, threshold %s", sensor.id, alert_type.value, value, threshold
        )
    return reading, alert


def field_path_for(sensor: Sensor) -> FieldPath:
    return FieldPath.compile(sensor.field_path or DEFAULT_FIELD_PATH)


def ingest_payload(
    db: Session,
    sensor: Sensor,
    payload: Any,
    field_path: Optional[FieldPath] = None,
) -> Optional[Tuple[SensorReading, Optional[Alert]]]:
    """
    Extract the value from a decoded JSON payload and record it.

    Returns None (and logs) when the payload carries no usable number. An
    optional ISO-8601 "timestamp" key dates the reading; otherwise it is now.
    """
    path = field_path or field_path_for(sensor)
    value = path.extract(payload)
    if value is None:
        logger.warning(
            "Dropped payload for sensor %s: no numeric value at '%s'", sensor.id, path.expression
        )
        return None

    timestamp = None
    if isinstance(payload, dict) and payload.get("timestamp") is not None:
        timestamp = parse_timestamp(payload.get("timestamp"))
        if timestamp is None:
            logger.debug("Sensor %s payload timestamp %r not parseable, using now", sensor.id, payload.get("timestamp"))

    return record_reading(db, sensor, value, timestamp=timestamp, is_simulated=False)


def _with_noise(value: float, ratio: float, rng: random.Random) -> float:
    return value + value * rng.uniform(-ratio, ratio)


def simulate_readings(
    db: Session,
    sensor: Sensor,
    mode: str,
    value: Optional[float] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    count: int = 10,
    interval: int = 30,
    add_noise: bool = False,
    mark_as_simulated: bool = True,
    rng: Optional[random.Random] = None,
) -> List[Tuple[SensorReading, Optional[Alert]]]:
    """
    Generate readings for testing dashboards and alerts.

    single: one reading at `value` (optionally +/-2.5% noise)
    range: one reading uniform in [min_value, max_value]
    burst: `count` readings spaced `interval` seconds back from now, +/-5% noise
    """
    rng = rng or random.Random()
    now = utcnow()
    results = []

    if mode == "single":
        if value is None:
            raise ValueError("value is required in single mode")
        reading_value = _with_noise(value, SINGLE_NOISE, rng) if add_noise else value
        results.append(record_reading(db, sensor, round(reading_value, 2), now, mark_as_simulated))

    elif mode == "range":
        if min_value is None or max_value is None or min_value > max_value:
            raise ValueError("range mode needs min_value <= max_value")
        reading_value = rng.uniform(min_value, max_value)
        results.append(record_reading(db, sensor, round(reading_value, 2), now, mark_as_simulated))

    elif mode == "burst":
        if value is None:
            raise ValueError("value is required in burst mode")
        if count < 1:
            raise ValueError("count must be at least 1")
        for i in range(count):
            timestamp = now - timedelta(seconds=interval * (count - 1 - i))
            reading_value = _with_noise(value, BURST_NOISE, rng)
            results.append(record_reading(db, sensor, round(reading_value, 2), timestamp, mark_as_simulated))

    else:
        raise ValueError(f"Unknown simulation mode '{mode}'")

    logger.info("Simulated %d readings (%s) for sensor %s", len(results), mode, sensor.id)
    return results

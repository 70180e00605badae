"""
Servizio sensori: anagrafica, configurazione broker, letture e alert
"""
import logging
import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from lotetrace.core.config import settings
from lotetrace.models.sensors import Alert, Sensor, SensorReading
from lotetrace.schemas.sensors import SensorCreate, SensorMqttConfig, SensorUpdate
from lotetrace.services.errors import NotFoundError
from lotetrace.services.production.lote_service import get_zone
from lotetrace.utils.dates import to_naive_utc

logger = logging.getLogger(__name__)


def _new_device_id() -> str:
    return f"SENSOR_{secrets.token_hex(4).upper()}"


def get_sensor(db: Session, organization_id: int, sensor_id: int) -> Sensor:
    sensor = (
        db.query(Sensor)
        .filter(Sensor.id == sensor_id, Sensor.organization_id == organization_id)
        .first()
    )
    if sensor is None:
        raise NotFoundError("Sensor not found")
    return sensor


def get_active_sensor(db: Session, sensor_id: int) -> Sensor:
    """Sensor accepting pushed readings; inactive sensors are reported as missing."""
    sensor = db.query(Sensor).filter(Sensor.id == sensor_id, Sensor.is_active.is_(True)).first()
    if sensor is None:
        raise NotFoundError("Sensor not found or inactive")
    return sensor


def list_sensors(
    db: Session,
    organization_id: int,
    zone_id: Optional[int] = None,
    include_inactive: bool = True,
) -> List[Sensor]:
    query = db.query(Sensor).filter(Sensor.organization_id == organization_id)

    if zone_id is not None:
        query = query.filter(Sensor.zone_id == zone_id)

    if not include_inactive:
        query = query.filter(Sensor.is_active.is_(True))

    return query.order_by(Sensor.id.asc()).all()


def list_broker_sensors(db: Session) -> List[Sensor]:
    """Active sensors with a broker subscription, across all organizations."""
    return (
        db.query(Sensor)
        .filter(
            Sensor.is_active.is_(True),
            Sensor.mqtt_enabled.is_(True),
            Sensor.mqtt_topic.isnot(None),
        )
        .order_by(Sensor.id.asc())
        .all()
    )


def create_sensor(db: Session, organization_id: int, data: SensorCreate) -> Sensor:
    zone = get_zone(db, organization_id, data.zone_id)

    device_id = data.device_id or _new_device_id()
    if db.query(Sensor).filter(Sensor.device_id == device_id).first() is not None:
        raise ValueError(f"Device id '{device_id}' is already registered")

    sensor = Sensor(
        organization_id=organization_id,
        zone_id=zone.id,
        name=data.name,
        device_id=device_id,
        sensor_type=data.sensor_type,
        unit=data.unit,
        validation_min=data.validation_min,
        validation_max=data.validation_max,
        is_public=data.is_public,
        field_path=data.field_path,
    )
    db.add(sensor)
    db.flush()
    logger.info("Sensor %s (%s) created in zone %s", sensor.id, sensor.sensor_type, zone.id)
    return sensor


def update_sensor(db: Session, organization_id: int, sensor_id: int, data: SensorUpdate) -> Sensor:
    sensor = get_sensor(db, organization_id, sensor_id)
    changes = data.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(sensor, key, value)

    if (
        sensor.validation_min is not None
        and sensor.validation_max is not None
        and sensor.validation_min > sensor.validation_max
    ):
        raise ValueError("validation_min must not exceed validation_max")

    db.flush()
    return sensor


def update_mqtt_config(db: Session, organization_id: int, sensor_id: int, data: SensorMqttConfig) -> Sensor:
    sensor = get_sensor(db, organization_id, sensor_id)
    sensor.mqtt_enabled = data.mqtt_enabled
    sensor.mqtt_host = data.mqtt_host or settings.MQTT_DEFAULT_HOST
    sensor.mqtt_port = data.mqtt_port or settings.MQTT_DEFAULT_PORT
    sensor.mqtt_username = data.mqtt_username
    if data.mqtt_password is not None:
        sensor.mqtt_password = data.mqtt_password
    sensor.mqtt_topic = data.mqtt_topic
    sensor.field_path = data.field_path
    db.flush()
    logger.info(
        "Broker configuration updated for sensor %s (enabled=%s, topic=%s)",
        sensor.id, sensor.mqtt_enabled, sensor.mqtt_topic,
    )
    return sensor


def list_readings(
    db: Session,
    sensor: Sensor,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    include_simulated: bool = True,
    limit: int = 1000,
) -> List[SensorReading]:
    query = db.query(SensorReading).filter(SensorReading.sensor_id == sensor.id)

    start_time = to_naive_utc(start_time)
    end_time = to_naive_utc(end_time)
    if start_time:
        query = query.filter(SensorReading.timestamp >= start_time)
    if end_time:
        query = query.filter(SensorReading.timestamp <= end_time)
    if not include_simulated:
        query = query.filter(SensorReading.is_simulated.is_(False))

    return query.order_by(SensorReading.timestamp.desc(), SensorReading.id.desc()).limit(limit).all()


def latest_reading(db: Session, sensor: Sensor) -> Optional[SensorReading]:
    return (
        db.query(SensorReading)
        .filter(SensorReading.sensor_id == sensor.id)
        .order_by(SensorReading.timestamp.desc(), SensorReading.id.desc())
        .first()
    )


def list_alerts(
    db: Session,
    organization_id: int,
    unread_only: bool = False,
    sensor_id: Optional[int] = None,
    limit: int = 100,
) -> List[Alert]:
    query = db.query(Alert).filter(Alert.organization_id == organization_id)

    if unread_only:
        query = query.filter(Alert.is_read.is_(False))
    if sensor_id is not None:
        query = query.filter(Alert.sensor_id == sensor_id)

    return query.order_by(Alert.id.desc()).limit(limit).all()


def count_unread_alerts(db: Session, organization_id: int) -> int:
    return (
        db.query(func.count(Alert.id))
        .filter(Alert.organization_id == organization_id, Alert.is_read.is_(False))
        .scalar()
    ) or 0


def mark_alert_read(db: Session, organization_id: int, alert_id: int) -> Alert:
    alert = (
        db.query(Alert)
        .filter(Alert.id == alert_id, Alert.organization_id == organization_id)
        .first()
    )
    if alert is None:
        raise NotFoundError("Alert not found")
    alert.is_read = True
    db.flush()
    return alert

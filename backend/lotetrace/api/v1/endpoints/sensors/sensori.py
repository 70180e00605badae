"""
Sensori endpoints
"""
import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from lotetrace.api.auth import RequestContext, get_request_context
from lotetrace.api.errors import service_errors
from lotetrace.core.database import get_db
from lotetrace.schemas.sensors import (
    IngestResponse,
    SensorCreate,
    SensorMqttConfig,
    SensorReadingResponse,
    SensorResponse,
    SensorUpdate,
    SimulationRequest,
    SimulationResponse,
)
from lotetrace.services.sensors import ingestion_service, sensor_service
from lotetrace.services.sensors.mqtt_pool import request_refresh

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sensors")


@router.post("", response_model=SensorResponse, status_code=status.HTTP_201_CREATED)
async def create_sensor(
    data: SensorCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        sensor = sensor_service.create_sensor(db, ctx.organization_id, data)
        db.commit()
    db.refresh(sensor)
    return sensor


@router.get("", response_model=List[SensorResponse])
async def get_sensors(
    zone_id: Optional[int] = None,
    include_inactive: bool = True,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return sensor_service.list_sensors(db, ctx.organization_id, zone_id=zone_id, include_inactive=include_inactive)


@router.get("/{sensor_id}", response_model=SensorResponse)
async def get_sensor(
    sensor_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        return sensor_service.get_sensor(db, ctx.organization_id, sensor_id)


@router.patch("/{sensor_id}", response_model=SensorResponse)
async def update_sensor(
    sensor_id: int,
    data: SensorUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        sensor = sensor_service.update_sensor(db, ctx.organization_id, sensor_id, data)
        db.commit()
    db.refresh(sensor)
    if data.is_active is not None and sensor.mqtt_enabled:
        request_refresh()
    return sensor


@router.put("/{sensor_id}/mqtt-config", response_model=SensorResponse)
async def update_sensor_mqtt_config(
    sensor_id: int,
    data: SensorMqttConfig,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Save the broker configuration and ask the connection pool to pick it up."""
    with service_errors(db):
        sensor = sensor_service.update_mqtt_config(db, ctx.organization_id, sensor_id, data)
        db.commit()
    db.refresh(sensor)
    request_refresh()
    return sensor


@router.post("/{sensor_id}/reading", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def push_reading(
    sensor_id: int,
    payload: Any = Body(...),
    db: Session = Depends(get_db),
):
    """
    Ingresso pubblico per gateway e dispositivi (nessun header organizzazione).

    The value is read at the sensor's field path ("value" by default); an
    optional ISO-8601 "timestamp" key dates the reading.
    """
    with service_errors(db):
        sensor = sensor_service.get_active_sensor(db, sensor_id)
        stored = ingestion_service.ingest_payload(db, sensor, payload)
        if stored is None:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"No numeric value at '{sensor.field_path or 'value'}'",
            )
        reading, alert = stored
        db.commit()

    db.refresh(reading)
    return IngestResponse(
        status="stored",
        reading=SensorReadingResponse.model_validate(reading),
        alert_id=alert.id if alert is not None else None,
    )


@router.get("/{sensor_id}/readings", response_model=List[SensorReadingResponse])
async def get_readings(
    sensor_id: int,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    include_simulated: bool = True,
    limit: int = Query(1000, ge=1, le=10000),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        sensor = sensor_service.get_sensor(db, ctx.organization_id, sensor_id)
    return sensor_service.list_readings(
        db,
        sensor,
        start_time=start_time,
        end_time=end_time,
        include_simulated=include_simulated,
        limit=limit,
    )


@router.get("/{sensor_id}/readings/latest", response_model=Optional[SensorReadingResponse])
async def get_latest_reading(
    sensor_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    with service_errors(db):
        sensor = sensor_service.get_sensor(db, ctx.organization_id, sensor_id)
    return sensor_service.latest_reading(db, sensor)


@router.post("/{sensor_id}/simulate", response_model=SimulationResponse)
async def simulate(
    sensor_id: int,
    request: SimulationRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Generate test readings; thresholds are evaluated as for real ones."""
    with service_errors(db):
        sensor = sensor_service.get_sensor(db, ctx.organization_id, sensor_id)
        results = ingestion_service.simulate_readings(
            db,
            sensor,
            request.mode,
            value=request.value,
            min_value=request.min_value,
            max_value=request.max_value,
            count=request.count,
            interval=request.interval,
            add_noise=request.add_noise,
            mark_as_simulated=request.mark_as_simulated,
        )
        db.commit()

    alerts = sum(1 for _, alert in results if alert is not None)
    return SimulationResponse(
        message=f"Generated {len(results)} readings ({request.mode})",
        count=len(results),
        alerts=alerts,
    )

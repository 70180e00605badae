"""
Sensor schemas
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from lotetrace.services.sensors.field_path import validate_field_path


class SensorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sensor_type: str = Field(..., min_length=1, max_length=50)
    unit: Optional[str] = Field(None, max_length=20)
    validation_min: Optional[Decimal] = None
    validation_max: Optional[Decimal] = None
    is_public: bool = True

    @model_validator(mode="after")
    def _min_not_above_max(self):
        if (
            self.validation_min is not None
            and self.validation_max is not None
            and self.validation_min > self.validation_max
        ):
            raise ValueError("validation_min must not exceed validation_max")
        return self


class SensorCreate(SensorBase):
    zone_id: int
    device_id: Optional[str] = Field(None, min_length=1, max_length=50)
    field_path: Optional[str] = Field(None, max_length=255)

    @field_validator("field_path")
    @classmethod
    def _compile_field_path(cls, value):
        return validate_field_path(value)


class SensorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    unit: Optional[str] = Field(None, max_length=20)
    validation_min: Optional[Decimal] = None
    validation_max: Optional[Decimal] = None
    is_public: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("name", "is_public", "is_active")
    @classmethod
    def _not_null(cls, value):
        # Omit the field to leave it unchanged; these columns are NOT NULL
        if value is None:
            raise ValueError("field cannot be null")
        return value


class SensorMqttConfig(BaseModel):
    mqtt_enabled: bool = False
    mqtt_host: Optional[str] = Field(None, max_length=255)
    mqtt_port: Optional[int] = Field(None, gt=0, lt=65536)
    mqtt_username: Optional[str] = Field(None, max_length=255)
    mqtt_password: Optional[str] = Field(None, max_length=255)
    mqtt_topic: Optional[str] = Field(None, max_length=255)
    field_path: Optional[str] = Field(None, max_length=255)

    @field_validator("field_path")
    @classmethod
    def _compile_field_path(cls, value):
        return validate_field_path(value)

    @model_validator(mode="after")
    def _enabled_requires_topic(self):
        if self.mqtt_enabled and not self.mqtt_topic:
            raise ValueError("mqtt_topic is required when mqtt_enabled is true")
        return self


class SensorResponse(SensorBase):
    id: int
    organization_id: int
    zone_id: int
    device_id: str
    is_active: bool
    mqtt_enabled: bool
    mqtt_host: Optional[str] = None
    mqtt_port: Optional[int] = None
    mqtt_username: Optional[str] = None
    mqtt_topic: Optional[str] = None
    field_path: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

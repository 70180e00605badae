"""
Sensor reading schemas
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, Literal
from datetime import datetime


class SensorReadingResponse(BaseModel):
    id: int
    sensor_id: int
    value: float
    timestamp: datetime
    is_simulated: bool

    class Config:
        from_attributes = True


class IngestResponse(BaseModel):
    status: str
    reading: Optional[SensorReadingResponse] = None
    alert_id: Optional[int] = None


class SimulationRequest(BaseModel):
    mode: Literal["single", "range", "burst"]
    value: Optional[float] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    count: int = Field(10, ge=1, le=1000)
    interval: int = Field(30, ge=1)  # secondi tra letture in modalità burst
    add_noise: bool = False
    mark_as_simulated: bool = True

    @model_validator(mode="after")
    def _mode_parameters(self):
        if self.mode in ("single", "burst") and self.value is None:
            raise ValueError(f"value is required in {self.mode} mode")
        if self.mode == "range":
            if self.min_value is None or self.max_value is None:
                raise ValueError("min_value and max_value are required in range mode")
            if self.min_value > self.max_value:
                raise ValueError("min_value must not exceed max_value")
        return self


class SimulationResponse(BaseModel):
    message: str
    count: int
    alerts: int

"""
Zone schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime

from lotetrace.core.stages import zone_stages


class TargetRange(BaseModel):
    min: float
    max: float

    @field_validator("max")
    @classmethod
    def _max_not_below_min(cls, value, info):
        low = info.data.get("min")
        if low is not None and value < low:
            raise ValueError("max must be greater than or equal to min")
        return value


class ZoneBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    stage: str
    fixed_info: Dict[str, Any] = Field(default_factory=dict)
    targets: Dict[str, TargetRange] = Field(default_factory=dict)

    @field_validator("stage")
    @classmethod
    def _stage_in_registry(cls, value):
        if value not in zone_stages():
            raise ValueError(f"stage must be one of: {', '.join(zone_stages())}")
        return value


class ZoneCreate(ZoneBase):
    pass


class ZoneResponse(ZoneBase):
    id: int
    organization_id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

"""
Lote schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class LoteBase(BaseModel):
    identification: str = Field(..., min_length=1, max_length=100)
    initial_animals: int = Field(..., ge=0)
    final_animals: Optional[int] = Field(None, ge=0)
    food_regime: Optional[str] = Field(None, max_length=100)
    custom_data: Dict[str, Any] = Field(default_factory=dict)
    piece_type: Optional[str] = Field(None, max_length=100)


class LoteCreate(LoteBase):
    pass


class LoteResponse(LoteBase):
    id: int
    organization_id: int
    status: str
    parent_lote_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoteDetailResponse(LoteResponse):
    current_stage: str
    current_zone_id: Optional[int] = None
    sub_lote_ids: List[int] = Field(default_factory=list)

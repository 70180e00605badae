"""
Movement schemas
"""
from pydantic import BaseModel, Field, StrictInt, model_validator
from typing import Optional, List, Literal, Union
from datetime import datetime

from lotetrace.core.stages import FINISHED


class SubLoteSpec(BaseModel):
    identification: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., gt=0)
    piece_type: Optional[str] = Field(None, max_length=100)


class MoveRequest(BaseModel):
    # Zone id or the literal "finished"
    target: Union[Literal["finished"], StrictInt]
    entry_time: datetime
    sub_lotes: List[SubLoteSpec] = Field(default_factory=list)
    generate_trace: bool = False

    @model_validator(mode="after")
    def _unique_sub_lote_names(self):
        names = [spec.identification.strip().lower() for spec in self.sub_lotes]
        if len(names) != len(set(names)):
            raise ValueError("sub-lote identifications must be unique")
        return self

    @property
    def is_finish(self) -> bool:
        return self.target == FINISHED


class QrSnapshotLink(BaseModel):
    id: int
    token: str
    url: str


class SubLoteSummary(BaseModel):
    id: int
    identification: str
    initial_animals: int
    piece_type: Optional[str] = None


class MoveResponse(BaseModel):
    message: str
    lote_id: int
    stage: str
    lote_status: str
    sub_lotes: List[SubLoteSummary] = Field(default_factory=list)
    qr_snapshot: Optional[QrSnapshotLink] = None


class IntegrityViolation(BaseModel):
    lote_id: int
    kind: str
    detail: str


class ConsistencyReport(BaseModel):
    checked_lotes: int
    violations: List[IntegrityViolation] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

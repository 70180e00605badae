"""
Production schemas
"""
from .lote import LoteBase, LoteCreate, LoteResponse, LoteDetailResponse
from .zone import TargetRange, ZoneBase, ZoneCreate, ZoneResponse
from .stay import StayResponse, AuditLogResponse
from .movement import (
    SubLoteSpec,
    MoveRequest,
    MoveResponse,
    QrSnapshotLink,
    SubLoteSummary,
    IntegrityViolation,
    ConsistencyReport,
)

__all__ = [
    "LoteBase",
    "LoteCreate",
    "LoteResponse",
    "LoteDetailResponse",
    "TargetRange",
    "ZoneBase",
    "ZoneCreate",
    "ZoneResponse",
    "StayResponse",
    "AuditLogResponse",
    "SubLoteSpec",
    "MoveRequest",
    "MoveResponse",
    "QrSnapshotLink",
    "SubLoteSummary",
    "IntegrityViolation",
    "ConsistencyReport",
]

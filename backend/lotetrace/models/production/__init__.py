"""
Production models
"""
from .organization import Organization
from .lote import Lote, LoteStatus
from .zone import Zone
from .stay import Stay
from .audit_log import AuditLog

__all__ = [
    "Organization",
    "Lote",
    "LoteStatus",
    "Zone",
    "Stay",
    "AuditLog",
]

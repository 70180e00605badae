"""
All models, imported together so that string relationships resolve
"""
from .production import Organization, Lote, LoteStatus, Zone, Stay, AuditLog
from .sensors import Sensor, SensorReading, Alert, AlertType
from .traceability import QrSnapshot

__all__ = [
    "Organization",
    "Lote",
    "LoteStatus",
    "Zone",
    "Stay",
    "AuditLog",
    "Sensor",
    "SensorReading",
    "Alert",
    "AlertType",
    "QrSnapshot",
]

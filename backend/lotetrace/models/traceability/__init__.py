"""
Traceability models
"""
from .qr_snapshot import QrSnapshot

__all__ = ["QrSnapshot"]

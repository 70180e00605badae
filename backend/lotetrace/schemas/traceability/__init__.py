"""
Traceability schemas
"""
from .snapshot import QrSnapshotResponse, PublicTraceResponse

__all__ = ["QrSnapshotResponse", "PublicTraceResponse"]

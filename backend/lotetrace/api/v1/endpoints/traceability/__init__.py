"""
Traceability Module - Router aggregation
"""
from fastapi import APIRouter

from .snapshots import router as snapshots_router

router = APIRouter(prefix="/traceability", tags=["traceability"])

router.include_router(snapshots_router)

"""
Public Module - endpoints reachable without organization context
"""
from fastapi import APIRouter

from .trace import router as trace_router

router = APIRouter(tags=["public"])

router.include_router(trace_router)

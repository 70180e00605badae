"""
Sensors Module - Router aggregation

Struttura:
- sensori: Anagrafica sensori, configurazione broker, letture, simulazione
- alerts: Alert di superamento soglia
"""
from fastapi import APIRouter

from .sensori import router as sensori_router
from .alerts import router as alerts_router

router = APIRouter(tags=["sensors"])

router.include_router(sensori_router)
router.include_router(alerts_router)

"""
Production Module - Router aggregation

Struttura:
- lotes: Lotti (CRUD, sub-lotti, storico permanenze, audit)
- zones: Zone di produzione per fase
- movimenti: Spostamento tra fasi, split, controllo consistenza
"""
from fastapi import APIRouter

from .lotes import router as lotes_router
from .zones import router as zones_router
from .movimenti import router as movimenti_router

# Router principale
router = APIRouter(prefix="/production", tags=["production"])

# Includi tutti i sub-router
router.include_router(lotes_router)
router.include_router(zones_router)
router.include_router(movimenti_router)

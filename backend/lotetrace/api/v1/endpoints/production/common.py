"""
Common imports and utilities for the production module
"""
from sqlalchemy.orm import Session

from lotetrace.api.errors import service_errors
from lotetrace.models.production import Lote
from lotetrace.schemas.production import LoteDetailResponse
from lotetrace.services.production.lote_service import current_position

__all__ = ["lote_detail", "service_errors"]


def lote_detail(db: Session, lote: Lote) -> LoteDetailResponse:
    stage, zone_id = current_position(db, lote)
    return LoteDetailResponse.model_validate(
        {
            "id": lote.id,
            "organization_id": lote.organization_id,
            "identification": lote.identification,
            "initial_animals": lote.initial_animals,
            "final_animals": lote.final_animals,
            "food_regime": lote.food_regime,
            "custom_data": lote.custom_data or {},
            "piece_type": lote.piece_type,
            "status": lote.status,
            "parent_lote_id": lote.parent_lote_id,
            "created_at": lote.created_at,
            "current_stage": stage,
            "current_zone_id": zone_id,
            "sub_lote_ids": [child.id for child in lote.sub_lotes],
        }
    )

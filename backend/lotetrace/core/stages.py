"""
Stage registry - the fixed production order

A lote only ever travels forward along STAGE_ORDER. Zones carry one of the
intermediate stages; UNASSIGNED and FINISHED are the two ends of the journey
and never belong to a zone.
"""
from typing import Tuple

UNASSIGNED = "unassigned"
BREEDING = "breeding"
FATTENING = "fattening"
SLAUGHTER = "slaughter"
CURING = "curing"
DISTRIBUTION = "distribution"
FINISHED = "finished"

STAGE_ORDER: Tuple[str, ...] = (
    UNASSIGNED,
    BREEDING,
    FATTENING,
    SLAUGHTER,
    CURING,
    DISTRIBUTION,
    FINISHED,
)

# Arriving here with sub-lote specs splits the lote
SPLIT_STAGE = CURING
# Arriving here may publish the traceability snapshot
TRACE_STAGE = DISTRIBUTION

_INDEX = {stage: position for position, stage in enumerate(STAGE_ORDER)}


class UnknownStageError(ValueError):
    """Raised for a stage identifier outside the registry."""


def stage_index(stage: str) -> int:
    try:
        return _INDEX[stage]
    except KeyError:
        raise UnknownStageError(f"Unknown stage '{stage}'") from None


def is_forward(current: str, target: str) -> bool:
    """True when target lies strictly after current in the production order."""
    return stage_index(target) > stage_index(current)


def zone_stages() -> Tuple[str, ...]:
    """Stages a zone may be assigned to."""
    return STAGE_ORDER[1:-1]


def is_zone_stage(stage: str) -> bool:
    return stage in zone_stages()

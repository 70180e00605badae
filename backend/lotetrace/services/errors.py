"""
Domain errors raised by the service layer

Endpoints translate ValueError subclasses to HTTP 400 and NotFoundError to
HTTP 404; neither leaves writes behind.
"""


class NotFoundError(LookupError):
    """Unknown entity, or an entity owned by another organization."""


class MovementValidationError(ValueError):
    """Movement rejected by the ordering or chronology rules."""


class StayConflictError(ValueError):
    """A second open stay would be created for the same lote."""

"""Translation of service-layer exceptions to HTTP errors"""
from contextlib import contextmanager

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from lotetrace.services.errors import NotFoundError


@contextmanager
def service_errors(db: Session):
    """NotFoundError -> 404, ValueError -> 400; the session is rolled back first."""
    try:
        yield
    except NotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

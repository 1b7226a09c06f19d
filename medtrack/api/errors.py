"""Traduction des erreurs métier en réponses HTTP."""
from __future__ import annotations

from fastapi import HTTPException

from medtrack.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    MedtrackError,
    NotFoundError,
)


def http_error(exc: MedtrackError) -> HTTPException:
    detail = str(exc)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=detail)
    if isinstance(exc, (InsufficientStockError, InvalidStateError)):
        return HTTPException(status_code=409, detail=detail)
    return HTTPException(status_code=400, detail=detail)

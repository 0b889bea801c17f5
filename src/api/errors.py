"""Translate engine exceptions into HTTP errors."""

from fastapi import HTTPException, status

from src.services.errors import (
    ChainStateError,
    InsufficientData,
    InvalidConfiguration,
    LedgerError,
    TrustEngineError,
    UnknownChain,
    UnknownDecision,
)


def to_http_exception(exc: TrustEngineError) -> HTTPException:
    """Map a domain error onto the status code callers should see."""
    if isinstance(exc, (UnknownChain, UnknownDecision)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InsufficientData):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, (ChainStateError, LedgerError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, InvalidConfiguration):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))

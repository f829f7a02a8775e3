"""Mapping from engine errors to HTTP responses."""

from fastapi import HTTPException

from spotbook.domain.errors import (
    InsufficientInventoryError,
    InvalidStateTransitionError,
    InventoryConsistencyError,
    NotFoundError,
    ReservationError,
    ReservationExpiredError,
)
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[ReservationError], int]] = [
    (NotFoundError, 404),
    (InsufficientInventoryError, 409),
    (InvalidStateTransitionError, 409),
    (ReservationExpiredError, 410),
    (InventoryConsistencyError, 500),
]


def status_for(exc: ReservationError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def http_error(exc: Exception) -> HTTPException:
    """Build the HTTPException for an engine or validation error.

    ReservationError → its mapped status with {code, message, details}.
    ValueError → 422.
    """
    if isinstance(exc, ReservationError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(
                "inventory consistency error",
                extra={
                    "extra_fields": safe_log_context(code=exc.code, **exc.details)
                },
            )
        return HTTPException(
            status_code=status_code,
            detail={"code": exc.code, "message": exc.message, "details": exc.details},
        )
    return HTTPException(
        status_code=422,
        detail={"code": "invalid_request", "message": str(exc), "details": {}},
    )

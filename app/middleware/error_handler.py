# app/middleware/error_handler.py
"""
Maps service-layer exceptions to structured JSON error responses.

Every response has the shape:
    {"error": {"category", "message", "timestamp", "path", ...details}}
"""

import logging
from datetime import datetime, timezone
from typing import Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.services.exceptions import (
    CapacityExceededError,
    InvalidScheduleError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
)

logger = logging.getLogger(__name__)


class ErrorCategory:
    """Error categories for structured error handling"""
    NOT_FOUND = "not_found_error"
    INVALID_STATE = "invalid_state_error"
    CAPACITY_EXCEEDED = "capacity_exceeded_error"
    INVALID_SCHEDULE = "invalid_schedule_error"
    INTERNAL = "internal_error"


def categorize(error: ServiceError) -> Tuple[str, int, dict]:
    """Category, HTTP status and extra response fields for a service error."""
    if isinstance(error, NotFoundError):
        return ErrorCategory.NOT_FOUND, status.HTTP_404_NOT_FOUND, {"resource": error.resource}
    if isinstance(error, InvalidScheduleError):
        details = {"field": error.field} if error.field else {}
        return ErrorCategory.INVALID_SCHEDULE, status.HTTP_400_BAD_REQUEST, details
    if isinstance(error, CapacityExceededError):
        return ErrorCategory.CAPACITY_EXCEEDED, status.HTTP_409_CONFLICT, {}
    if isinstance(error, InvalidStateError):
        return ErrorCategory.INVALID_STATE, status.HTTP_409_CONFLICT, {}
    return ErrorCategory.INTERNAL, status.HTTP_500_INTERNAL_SERVER_ERROR, {}


def handle_service_error(error: ServiceError, request: Request) -> JSONResponse:
    category, status_code, details = categorize(error)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"Service error: {category} on {request.method} {request.url.path}: {error.message}"
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "category": category,
                "message": error.message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                **details,
            }
        },
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """FastAPI exception handler for ServiceError"""
    return handle_service_error(exc, request)

"""Exception handlers rendering errors as JSON."""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException, BookingRejectedException, InvalidLineItemException

logger = structlog.get_logger()


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    **extra: Any,
) -> JSONResponse:
    """Build the ``{"error", "message", "path"}`` body shared by every handler."""
    content = {"error": error, "message": message, "path": str(request.url), **extra}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle application exceptions raised by services.

    Booking rejections carry their machine-readable reason and line item
    errors carry the offending position.
    """
    extra: dict[str, Any] = {}
    if isinstance(exc, BookingRejectedException):
        extra["reason"] = exc.reason.value
    elif isinstance(exc, InvalidLineItemException):
        extra["details"] = {"index": exc.invalid.index, "field": exc.invalid.field}

    return _error_response(
        request, exc.status_code, exc.__class__.__name__, exc.message, **extra
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions raised by FastAPI and the auth dependencies."""
    response = _error_response(request, exc.status_code, "HTTPException", exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle request validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON error response with validation details
    """
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details=exc.errors(),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking internals."""
    logger.exception(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error_type=exc.__class__.__name__,
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )

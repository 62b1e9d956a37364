"""Global exception handlers for the admin API.

Every error leaves the API in one envelope:

    {
        "error": {
            "code": "INVALID_DATE_RANGE",
            "message": "Invalid date range: start_date must not be after end_date",
            "details": {"start_date": "2025-03-01", "end_date": "2025-01-01"},
            "timestamp": "2025-02-01T00:00:00+00:00"
        }
    }

Usage:
    from partition_lifecycle.api.exception_handlers import register_exception_handlers
    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from partition_lifecycle.core.exceptions import PartitionLifecycleError
from partition_lifecycle.core.logging import get_logger, get_run_id, sanitize_error

logger = get_logger(__name__)

_STATUS_TO_CODE = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    503: "SERVICE_UNAVAILABLE",
}


def build_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error_code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional error details
        errors: Optional field-level validation errors

    Returns:
        JSONResponse with standardized error format
    """
    error_body: dict[str, Any] = {
        "code": error_code,
        "message": message,
    }

    if details:
        error_body["details"] = details
    if errors:
        error_body["errors"] = errors

    run_id = get_run_id()
    if run_id:
        error_body["run_id"] = run_id

    error_body["timestamp"] = datetime.now(UTC).isoformat()

    return JSONResponse(status_code=status_code, content={"error": error_body})


async def partition_lifecycle_exception_handler(
    request: Request,
    exc: PartitionLifecycleError,
) -> JSONResponse:
    """Convert application exceptions to standardized error responses."""
    log_context: dict[str, Any] = {
        "error_code": exc.error_code,
        "status_code": exc.status_code,
        "path": str(request.url.path),
        "method": request.method,
    }
    if exc.details:
        log_context["details"] = exc.details

    if exc.status_code >= 500:
        logger.error(f"Internal error: {exc.message}", extra=log_context, exc_info=True)
    else:
        logger.info(f"Client error: {exc.message}", extra=log_context)

    return build_error_response(
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details or None,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle standard HTTPException from FastAPI/Starlette."""
    error_code = _STATUS_TO_CODE.get(exc.status_code, "HTTP_ERROR")
    message = str(exc.detail) if exc.detail else error_code

    if exc.status_code >= 500:
        logger.error(f"HTTP error: {message}", extra={"path": str(request.url.path)})
    else:
        logger.info(f"Client error: {message}", extra={"path": str(request.url.path)})

    return build_error_response(
        error_code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle request validation errors with field-level details."""
    errors = []
    for error in exc.errors():
        loc = error.get("loc", ())
        field = ".".join(str(part) for part in loc) or "unknown"

        input_value = error.get("input")
        value = None
        if input_value is not None:
            value = str(input_value)[:100]

        errors.append(
            {
                "field": field,
                "message": error.get("msg", "Validation error"),
                "value": value,
            }
        )

    logger.info(
        "Request validation failed",
        extra={"path": str(request.url.path), "error_count": len(errors)},
    )

    return build_error_response(
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        status_code=422,
        errors=errors,
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unexpected exceptions."""
    logger.error(
        f"Unhandled exception: {sanitize_error(exc)}",
        extra={
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
        exc_info=True,
    )

    return build_error_response(
        error_code="INTERNAL_ERROR",
        message=sanitize_error(exc),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    # Note: type ignores needed due to Starlette's handler typing
    app.add_exception_handler(
        PartitionLifecycleError,
        partition_lifecycle_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        StarletteHTTPException,
        http_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.debug("Exception handlers registered")

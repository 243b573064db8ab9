"""Error Handlers — global exception handlers for the Roster API.

Invariants:
    - RosterError → its own envelope and http_status (400/404/502/503)
    - RequestValidationError → 400 with field-level details, same envelope shape
    - Exception (catch-all) → 500, never leaks internal details

Design Decisions:
    - Client-side failures (4xx) log at WARNING, server-side at ERROR: a bad email
      is not an incident
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import ErrorCategory, ErrorSeverity, RosterError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(RosterError, roster_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_error_handler)


async def roster_error_handler(request: Request, exc: RosterError) -> JSONResponse:
    level = logging.WARNING if exc.http_status < 500 else logging.ERROR
    logger.log(
        level, f"RosterError: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.WARNING,
            details=[
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        ),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: never leaks internal details."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}", exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    details: list[dict] | None = None,
) -> dict:
    error = {
        "code": code,
        "message": message,
        "category": category.value,
        "severity": severity.value,
    }
    if details is not None:
        error["details"] = details
    return {"error": error}

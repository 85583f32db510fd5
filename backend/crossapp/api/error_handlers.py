"""Error Handlers — global exception handlers for the CrossApp API.

Invariants:
    - CrossAppError → structured JSON with error code, message, severity
    - RequestValidationError → field-level error details (400)
    - Exception (catch-all) → never leaks internal details

Design Decisions:
    - Three-layer handler: domain (CrossAppError), validation (Pydantic), catch-all (Exception)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from crossapp.core.errors import CrossAppError, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_crossapp_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_crossapp_error_handler(app: FastAPI) -> None:

    @app.exception_handler(CrossAppError)
    async def crossapp_error_handler(request: Request, exc: CrossAppError):
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"CrossAppError: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "namespace": exc.context.namespace,
                "connection": exc.context.connection_name,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }

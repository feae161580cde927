"""
Global exception handlers for the API.

Every error response has the shape:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.exceptions import AppException

logger = logging.getLogger(__name__)

# Error codes for plain HTTP errors raised by the framework (unknown route, wrong method)
HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "authentication_failed",
    403: "authorization_failed",
    404: "not_found",
    405: "method_not_allowed",
    501: "not_implemented",
    503: "service_unavailable",
}


def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details,
            },
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"AppException on {request.url.path}: {exc.error_code} - {exc.message}")
        return error_response(
            exc.status_code,
            exc.error_code,
            exc.message,
            exc.details or None,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        """Wrap framework HTTP errors in the structured format."""
        code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return error_response(exc.status_code, code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            errors.append(
                {
                    "field": loc,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )

        logger.warning(f"Validation error on {request.url.path}: {len(errors)} error(s)")

        return error_response(
            422,
            "validation_error",
            "Request validation failed",
            {"errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all unhandled exceptions."""
        logger.exception(f"Unhandled exception on {request.url.path}: {exc}")

        # In production, hide internal error details
        if get_settings().is_production:
            message = "An unexpected error occurred"
            details = None
        else:
            message = str(exc)
            details = {"type": type(exc).__name__}

        return error_response(500, "internal_error", message, details)

"""Global exception handlers for the FastAPI console."""

import logging
from typing import Dict, Any, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import (
    NewsdeskException, ValidationException, ActionFailedException,
    GatewayException, ConfigurationException, ErrorSeverity
)

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized error handling and response generation."""

    @staticmethod
    def create_error_response(
        status_code: int,
        error_code: str,
        message: str,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retry_after: Optional[int] = None
    ) -> JSONResponse:
        """Create standardized error response."""
        content = {
            "error": {
                "code": error_code,
                "message": message,
                "user_message": user_message or message,
                "details": details or {}
            }
        }

        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        return JSONResponse(
            status_code=status_code,
            content=content,
            headers=headers
        )

    @staticmethod
    def log_error(
        exception: Exception,
        request: Request,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM
    ) -> None:
        """Log error with request information."""
        error_info = {
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "method": request.method,
            "url": str(request.url),
        }

        if severity == ErrorSeverity.CRITICAL:
            logger.critical("Critical error occurred", extra=error_info)
        elif severity == ErrorSeverity.HIGH:
            logger.error("High severity error occurred", extra=error_info)
        elif severity == ErrorSeverity.MEDIUM:
            logger.warning("Medium severity error occurred", extra=error_info)
        else:
            logger.info("Low severity error occurred", extra=error_info)


async def newsdesk_exception_handler(request: Request, exc: NewsdeskException) -> JSONResponse:
    """Handle Newsdesk exceptions that escaped a service boundary."""
    ErrorHandler.log_error(exc, request, exc.severity)

    if isinstance(exc, ValidationException):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ActionFailedException):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, GatewayException):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, ConfigurationException):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return ErrorHandler.create_error_response(
        status_code=status_code,
        error_code=exc.error_code,
        message=exc.message,
        user_message=exc.user_message,
        details=exc.details,
        retry_after=exc.retry_after
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    ErrorHandler.log_error(exc, request, ErrorSeverity.LOW)

    validation_errors = []
    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        validation_errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"],
        })

    return ErrorHandler.create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        user_message="Please check your input data and try again.",
        details={"validation_errors": validation_errors}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    severity = ErrorSeverity.LOW if exc.status_code < 500 else ErrorSeverity.HIGH
    ErrorHandler.log_error(exc, request, severity)

    error_code_map = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "UNPROCESSABLE_ENTITY",
        500: "INTERNAL_SERVER_ERROR",
        502: "BAD_GATEWAY",
        503: "SERVICE_UNAVAILABLE",
    }

    return ErrorHandler.create_error_response(
        status_code=exc.status_code,
        error_code=error_code_map.get(exc.status_code, "HTTP_ERROR"),
        message=str(exc.detail),
        user_message=str(exc.detail)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    ErrorHandler.log_error(exc, request, ErrorSeverity.CRITICAL)

    return ErrorHandler.create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code="UNEXPECTED_ERROR",
        message=f"Unexpected error: {type(exc).__name__}",
        user_message="An unexpected error occurred. Please try again later."
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(NewsdeskException, newsdesk_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

"""Centralized exception handlers for the FastAPI application.

Domain exceptions are mapped to HTTP responses by their ``ErrorCategory``,
so routers never translate them one by one.

Error Response Format:
    {
        "detail": "Human-readable error message",
        "code": "MACHINE_READABLE_ERROR_CODE"
    }

Usage:
    from keygate.presentation.api.exception_handlers import setup_exception_handlers

    app = FastAPI()
    setup_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from keygate.domain.shared.exceptions import ErrorCategory, KeygateError
from keygate.presentation.api.schemas import ErrorResponse
from keygate_identity import RateLimitedError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"
PERMISSION_DENIED_MESSAGE = "Permission denied"

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorCategory.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.RATE_LIMIT: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCategory.AVAILABILITY: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.CONFIGURATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _create_error_response(
    status_code: int,
    message: str,
    code: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=message, code=code).model_dump(),
        headers=headers,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI application.

    Parameters
    ----------
    app
        The FastAPI application instance
    """

    @app.exception_handler(KeygateError)
    async def keygate_exception_handler(
        request: Request,
        exc: KeygateError,
    ) -> JSONResponse:
        """Handle all domain exceptions with structured response."""
        status_code = CATEGORY_TO_STATUS.get(
            exc.category,
            status.HTTP_400_BAD_REQUEST,
        )
        message = exc.message
        headers: dict[str, str] | None = None

        if exc.category is ErrorCategory.AUTHORIZATION:
            message = PERMISSION_DENIED_MESSAGE
        elif isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}

        log = logger.error if status_code >= 500 else logger.warning  # NOQA: PLR2004
        log(
            "Domain exception on %s %s: %s (code=%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.code.value,
        )

        return _create_error_response(
            status_code=status_code,
            message=message,
            code=exc.code.value,
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unhandled exceptions with consistent error format."""
        logger.exception(
            "Unhandled exception on %s %s: %s",
            request.method,
            request.url.path,
            exc,
        )
        return _create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="An internal error occurred",
            code=INTERNAL_ERROR_CODE,
        )

"""Error taxonomy and the FastAPI handlers that render it.

``PublicError`` messages are safe to show verbatim. ``InternalError`` details
are logged server-side and the caller only ever sees a generic message.
"""
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from sleepplanet.utils.logger import logger

INTERNAL_ERROR_MESSAGE = "internal error occurred"


class ConfigError(Exception):
    """Settings the service cannot run with. Raised at startup only."""


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PublicError(AppError):
    """Caller-facing failure; the message is returned as-is."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "bad_request"


class ConflictError(PublicError):
    """A uniqueness or state conflict, e.g. a duplicate email or an already frozen account."""

    status_code = status.HTTP_409_CONFLICT
    error = "conflict"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(PublicError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class UnauthorizedError(PublicError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"


class ForbiddenError(PublicError):
    """A credential was presented but rejected."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class PrivilegeError(ForbiddenError):
    """The caller is authenticated but lacks the required role."""

    error = "insufficient_privilege"

    def __init__(self, message: str = "insufficient privilege"):
        super().__init__(message)


class InternalError(AppError):
    """Server-side failure. ``message`` is for the log, never for the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_server_error"


class HashingError(InternalError):
    """Password hashing failed or a stored hash could not be parsed."""


def _error_response(exc: AppError, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers for the error taxonomy to ``app``."""

    @app.exception_handler(PublicError)
    async def public_error_handler(request: Request, exc: PublicError):
        return _error_response(exc, exc.message)

    @app.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError):
        logger.error(
            f"Internal error: {exc.message}",
            extra={"path": request.url.path},
            exc_info=exc,
        )
        return _error_response(exc, INTERNAL_ERROR_MESSAGE)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for uncaught errors"""
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={"path": request.url.path},
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal_server_error", "message": INTERNAL_ERROR_MESSAGE},
        )

"""
Application errors and their HTTP mapping.

Services raise AppError tagged with an ErrorKind and never build HTTP
responses themselves. The mapping from kind to status code lives here and
is applied once, by the exception handlers registered in main.py.
"""
from enum import Enum
from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from nexus.core.config import settings

logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    """Failure categories raised by the core."""
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNPROCESSABLE_CONTENT = "unprocessable_content"
    TOO_MANY_REQUESTS = "too_many_requests"


class AppError(Exception):
    """
    A terminal business-rule violation.

    Attributes:
        kind: Error category (maps to a status code at the boundary).
        message: Human-readable message, safe to show to clients.
        code: Optional machine-readable hint (e.g. "token_expired").
        errors: Optional list of {path, error} items for validation failures.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.code = code
        self.errors = errors
        super().__init__(message)

    def __repr__(self) -> str:
        return f"AppError({self.kind.value}, {self.message!r})"


# Convenience constructors, so call sites read like the failure they describe
def bad_request(message: str) -> AppError:
    return AppError(ErrorKind.BAD_REQUEST, message)


def unauthorized(message: str, code: str | None = None) -> AppError:
    return AppError(ErrorKind.UNAUTHORIZED, message, code=code)


def forbidden(message: str) -> AppError:
    return AppError(ErrorKind.FORBIDDEN, message)


def not_found(message: str) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message)


def conflict(message: str) -> AppError:
    return AppError(ErrorKind.CONFLICT, message)


# =============================================================================
# Boundary mapping
# =============================================================================

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNPROCESSABLE_CONTENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.TOO_MANY_REQUESTS: status.HTTP_429_TOO_MANY_REQUESTS,
}


def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as {"detail": ..., ["code"], ["errors"]}."""
    status_code = STATUS_BY_KIND[exc.kind]
    content: dict[str, Any] = {"detail": exc.message}
    if exc.code:
        content["code"] = exc.code
    if exc.errors is not None:
        content["errors"] = exc.errors

    headers = None
    if exc.kind is ErrorKind.UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    if status_code >= 500:
        logger.error("request.failed", kind=exc.kind.value, path=request.url.path)
    else:
        logger.info(
            "request.rejected",
            kind=exc.kind.value,
            status_code=status_code,
            method=request.method,
            path=request.url.path,
        )

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten pydantic errors to [{path, error}] under UNPROCESSABLE_CONTENT."""
    errors = []
    for issue in exc.errors():
        # Drop the location prefix ("body", "path", "query")
        loc = [str(part) for part in issue.get("loc", ())][1:]
        errors.append({"path": ".".join(loc), "error": issue.get("msg", "Invalid value")})

    return _app_error_handler(
        request,
        AppError(ErrorKind.UNPROCESSABLE_CONTENT, "Validation Error", errors=errors),
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when DEBUG is on."""
    logger.exception("request.unhandled_error", method=request.method, path=request.url.path)
    detail = str(exc) if settings.DEBUG else "Internal Server Error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register AppError, request validation, and catch-all handlers."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

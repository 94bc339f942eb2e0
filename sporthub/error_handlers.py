"""Global exception handlers mapping failures onto the error envelope."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sporthub.errors import AppError, is_trusted_error
from sporthub.responses import error_response

GENERIC_SERVER_MESSAGE = "Internal server error."

_CODE_BY_STATUS: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMITED",
    503: "SERVICE_UNAVAILABLE",
}

logger = structlog.get_logger(__name__)


def _status_code_to_error_code(status_code: int) -> str:
    """Derive a machine-readable code for framework-raised HTTP errors."""
    if status_code >= 500:
        return _CODE_BY_STATUS.get(status_code, "INTERNAL_SERVER_ERROR")
    return _CODE_BY_STATUS.get(status_code, "BAD_REQUEST")


def _extract_message_and_code(detail: Any) -> tuple[str, str | None]:
    """Normalize HTTPException detail into message and optional code."""
    if isinstance(detail, dict):
        raw_message = detail.get("message") or detail.get("detail") or "Request failed."
        raw_code = detail.get("code")
        return str(raw_message), str(raw_code) if raw_code is not None else None
    if isinstance(detail, str):
        return detail, None
    return "Request failed.", None


def _validation_details(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group validation messages by dotted field location."""
    details: dict[str, list[str]] = defaultdict(list)
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        details[location or "request"].append(str(error.get("msg", "Invalid value.")))
    return dict(details)


def _correlation_id(request: Request) -> str:
    return getattr(
        request.state,
        "correlation_id",
        request.headers.get("x-correlation-id", "unknown"),
    )


def _extract_client_ip(request: Request) -> str:
    """Extract request client IP with forwarding-header support."""
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


def _log_auth_failure(request: Request, status_code: int, code: str, message: str) -> None:
    """Emit a WARNING log for client errors on authentication routes."""
    if status_code < 400 or status_code >= 500:
        return
    if not request.url.path.startswith("/auth"):
        return
    logger.warning(
        "auth_failure",
        correlation_id=_correlation_id(request),
        event_type="auth_failure",
        ip_address=_extract_client_ip(request),
        success=False,
        status_code=status_code,
        code=code,
        detail=message,
        path=request.url.path,
        method=request.method,
    )


def _internal_error(request: Request, exc: Exception, environment: str) -> JSONResponse:
    """Log an unexpected failure and mask it outside development."""
    logger.error(
        "unhandled_exception",
        correlation_id=_correlation_id(request),
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    message = str(exc) if environment == "development" and str(exc) else GENERIC_SERVER_MESSAGE
    return error_response(status_code=500, code="INTERNAL_SERVER_ERROR", message=message)


def register_exception_handlers(app: FastAPI, environment: str) -> None:
    """Register global exception handlers enforcing the envelope contract."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        """Render operational errors with their own status and code."""
        if not is_trusted_error(exc):
            return _internal_error(request, exc, environment)
        _log_auth_failure(request, exc.status_code, exc.code, exc.message)
        return error_response(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            details=exc.details,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Normalize framework HTTP exceptions to the envelope."""
        message, raw_code = _extract_message_and_code(exc.detail)
        code = raw_code or _status_code_to_error_code(exc.status_code)
        _log_auth_failure(request, exc.status_code, code, message)
        return error_response(status_code=exc.status_code, code=code, message=message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Map request validation errors to 400 with field-level details."""
        message = "Validation failed."
        _log_auth_failure(request, 400, "VALIDATION_ERROR", message)
        return error_response(
            status_code=400,
            code="VALIDATION_ERROR",
            message=message,
            details=_validation_details(exc),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Mask internal errors behind a generic 500 envelope."""
        return _internal_error(request, exc, environment)

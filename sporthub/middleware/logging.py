"""Per-request access logging with credential redaction."""

from __future__ import annotations

from collections.abc import Mapping
from time import perf_counter
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

REDACTED = "***REDACTED***"
_SENSITIVE_FRAGMENTS = ("token", "password", "secret", "jwt", "authorization", "cookie")
_LOGGED_HEADERS = ("user-agent", "referer", "content-type", "authorization", "cookie")

logger = structlog.get_logger(__name__)


def is_sensitive_key(key: str) -> bool:
    """Return True when a key name suggests credential material."""
    normalized = key.lower().replace("-", "_")
    return any(fragment in normalized for fragment in _SENSITIVE_FRAGMENTS)


def redact(values: Mapping[str, Any]) -> dict[str, Any]:
    """Copy a mapping, masking sensitive keys at any depth."""
    redacted: dict[str, Any] = {}
    for key, value in values.items():
        if is_sensitive_key(key):
            redacted[key] = REDACTED
        elif isinstance(value, Mapping):
            redacted[key] = redact(value)
        elif isinstance(value, list):
            redacted[key] = [redact(item) if isinstance(item, Mapping) else item for item in value]
        else:
            redacted[key] = value
    return redacted


def client_ip(request: Request) -> str:
    """Extract client address using X-Forwarded-For when present."""
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured `request_completed` event per request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = perf_counter()
        fields: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "query_params": redact(dict(request.query_params)),
            "headers": redact(
                {
                    name: request.headers[name]
                    for name in _LOGGED_HEADERS
                    if name in request.headers
                }
            ),
            "client_ip": client_ip(request),
        }

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_completed",
                status_code=500,
                duration_ms=round((perf_counter() - start) * 1000, 2),
                **fields,
            )
            raise

        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((perf_counter() - start) * 1000, 2),
            **fields,
        )
        return response

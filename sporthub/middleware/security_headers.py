"""Security headers applied to every API response."""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

BASE_HEADERS: dict[str, str] = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}
HSTS_HEADER = ("Strict-Transport-Security", "max-age=63072000; includeSubDomains")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Append hardening headers; token responses are never cached."""

    def __init__(self, app, enable_hsts: bool = False) -> None:
        super().__init__(app)
        self._headers = dict(BASE_HEADERS)
        if enable_hsts:
            self._headers[HSTS_HEADER[0]] = HSTS_HEADER[1]

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for header_name, header_value in self._headers.items():
            response.headers[header_name] = header_value
        if request.url.path.startswith(("/auth", "/users")):
            response.headers["Cache-Control"] = "no-store"
        return response

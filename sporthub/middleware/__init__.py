"""Middleware package exports."""

from sporthub.middleware.correlation_id import CorrelationIdMiddleware
from sporthub.middleware.logging import LoggingMiddleware
from sporthub.middleware.rate_limit import RateLimitMiddleware
from sporthub.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
]

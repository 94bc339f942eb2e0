"""Redis-backed sliding-window rate limiting for credential endpoints."""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Protocol
from uuid import uuid4

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from sporthub.config import RateLimitSettings
from sporthub.middleware.logging import client_ip
from sporthub.responses import error_response

logger = structlog.get_logger(__name__)
WINDOW_SECONDS = 60


class SlidingWindowPipeline(Protocol):
    """Queued Redis commands executed as one MULTI/EXEC block."""

    def zremrangebyscore(self, key: str, min: str | int, max: int) -> Any: ...

    def zadd(self, key: str, mapping: dict[str, int]) -> Any: ...

    def zcard(self, key: str) -> Any: ...

    def expire(self, key: str, ttl_seconds: int) -> Any: ...

    async def execute(self) -> list[Any]: ...


class SlidingWindowRedis(Protocol):
    """Redis operations used by the rate limiter."""

    def pipeline(self, transaction: bool = True) -> SlidingWindowPipeline: ...

    async def zrem(self, key: str, *members: str) -> int: ...


def build_path_limits(settings: RateLimitSettings) -> dict[str, int]:
    """Map each limited credential route onto its per-minute budget."""
    return {
        "/auth/login": settings.login_requests_per_minute,
        "/auth/register": settings.login_requests_per_minute,
        "/auth/refresh": settings.token_requests_per_minute,
    }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject callers that exceed a route's per-minute request budget.

    Only paths present in ``path_limits`` are counted. When Redis is
    unreachable the request is let through and a warning is logged.
    """

    def __init__(
        self,
        app,
        redis_client: SlidingWindowRedis,
        path_limits: Mapping[str, int],
        window_seconds: int = WINDOW_SECONDS,
    ) -> None:
        super().__init__(app)
        self._redis = redis_client
        self._path_limits = dict(path_limits)
        self._window_ms = window_seconds * 1000
        self._window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next) -> Response:
        limit = self._path_limits.get(request.url.path)
        if limit is None:
            return await call_next(request)

        bucket_key = f"rate_limit:{request.url.path}:{client_ip(request)}"
        now_ms = int(time.time() * 1000)
        member = f"{now_ms}:{uuid4()}"
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.zremrangebyscore(bucket_key, "-inf", now_ms - self._window_ms)
            pipe.zadd(bucket_key, {member: now_ms})
            pipe.zcard(bucket_key)
            pipe.expire(bucket_key, self._window_seconds + 1)
            _, _, in_window, _ = await pipe.execute()
            if in_window > limit:
                # Rejected attempts do not consume the budget.
                await self._redis.zrem(bucket_key, member)
                logger.warning(
                    "rate_limit_exceeded",
                    path=request.url.path,
                    client_ip=client_ip(request),
                    limit=limit,
                )
                response = error_response(
                    status_code=429,
                    code="RATE_LIMITED",
                    message="Too many requests, please try again later.",
                )
                response.headers["Retry-After"] = str(self._window_seconds)
                return response
        except RedisError:
            logger.warning(
                "rate_limit_backend_unavailable",
                path=request.url.path,
                method=request.method,
            )

        return await call_next(request)

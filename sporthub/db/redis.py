"""Shared async Redis client."""

from __future__ import annotations

from functools import lru_cache

from redis import asyncio as redis_async
from redis.asyncio.client import Redis

from sporthub.config import get_settings


@lru_cache
def get_redis_client() -> Redis:
    """Create and cache the Redis client used for rate limiting and readiness."""
    return redis_async.from_url(get_settings().redis.url, decode_responses=True)


async def close_redis_client() -> None:
    """Close pooled Redis connections if a client was created."""
    if get_redis_client.cache_info().currsize:
        await get_redis_client().aclose()
    get_redis_client.cache_clear()

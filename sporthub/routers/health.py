"""Liveness and readiness endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sporthub.db.redis import get_redis_client
from sporthub.db.session import get_engine

router = APIRouter(prefix="/health", tags=["health"])
logger = structlog.get_logger(__name__)


async def check_database_ready() -> bool:
    """Return True when PostgreSQL answers a trivial query."""
    try:
        async with get_engine().connect() as connection:
            await connection.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("readiness_check_failed", dependency="database", error=str(exc))
        return False
    return True


async def check_redis_ready() -> bool:
    """Return True when Redis answers PING."""
    try:
        return bool(await get_redis_client().ping())
    except (RedisError, OSError) as exc:
        logger.warning("readiness_check_failed", dependency="redis", error=str(exc))
        return False


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/ready")
async def ready(
    database_ready: Annotated[bool, Depends(check_database_ready)],
    redis_ready: Annotated[bool, Depends(check_redis_ready)],
) -> dict[str, str]:
    """Report ready only when both backing services respond."""
    if not database_ready or not redis_ready:
        raise HTTPException(
            status_code=503,
            detail={"message": "Service not ready.", "code": "SERVICE_UNAVAILABLE"},
        )
    return {"status": "ready"}

"""Integration fixtures: the real app against disposable Postgres and Redis."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import ExitStack
from typing import Any
from uuid import uuid4

import pytest
from alembic import command
from alembic.config import Config
from docker.errors import DockerException
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from testcontainers.postgres import PostgresContainer
from testcontainers.redis import RedisContainer

INTEGRATION_SECRET = "integration-signing-secret"
DEFAULT_PASSWORD = "pw123456"


def _cached_factories() -> tuple[Any, ...]:
    from sporthub.config import get_settings
    from sporthub.core.jwt import get_jwt_service
    from sporthub.core.passwords import get_password_hasher
    from sporthub.core.sessions import get_session_service
    from sporthub.db.redis import get_redis_client
    from sporthub.db.session import get_engine, get_session_factory
    from sporthub.services.user_service import get_user_service

    return (
        get_settings,
        get_engine,
        get_session_factory,
        get_redis_client,
        get_jwt_service,
        get_password_hasher,
        get_session_service,
        get_user_service,
    )


def _forget_singletons() -> None:
    """Drop every lru_cache'd service so the next call rereads the environment."""
    for factory in _cached_factories():
        factory.cache_clear()


async def _close_connections() -> None:
    """Close pooled connections bound to the current event loop."""
    from sporthub.db.redis import close_redis_client
    from sporthub.db.session import dispose_engine

    await close_redis_client()
    await dispose_engine()


def _asyncpg_url(postgres: PostgresContainer) -> str:
    raw = postgres.get_connection_url()
    _, _, location = raw.partition("://")
    return f"postgresql+asyncpg://{location}"


def _start_backends(stack: ExitStack) -> tuple[str, str]:
    """Start both containers under `stack`; skip locally when Docker is missing."""
    try:
        postgres = stack.enter_context(PostgresContainer("postgres:16"))
        redis = stack.enter_context(RedisContainer("redis:7"))
    except DockerException as exc:
        if os.environ.get("CI", "").lower() in {"1", "true", "yes"}:
            pytest.fail(f"Docker is required for integration tests in CI: {exc}")
        pytest.skip(f"Docker is not available: {exc}")
    redis_url = f"redis://{redis.get_container_host_ip()}:{redis.get_exposed_port(6379)}/0"
    return _asyncpg_url(postgres), redis_url


@pytest.fixture(scope="session")
def integration_env() -> Iterator[dict[str, str]]:
    """Point settings at fresh containers and migrate the schema to head."""
    with ExitStack() as stack:
        database_url, redis_url = _start_backends(stack)
        monkeypatch = pytest.MonkeyPatch()
        stack.callback(monkeypatch.undo)
        stack.callback(_forget_singletons)
        for key, value in {
            "APP__ENVIRONMENT": "development",
            "APP__LOG_LEVEL": "WARNING",
            "DATABASE__URL": database_url,
            "REDIS__URL": redis_url,
            "JWT__SECRET_KEY": INTEGRATION_SECRET,
            "PASSWORD__BCRYPT_ROUNDS": "4",
            "RATE_LIMIT__LOGIN_REQUESTS_PER_MINUTE": "10000",
            "RATE_LIMIT__TOKEN_REQUESTS_PER_MINUTE": "10000",
        }.items():
            monkeypatch.setenv(key, value)
        _forget_singletons()

        alembic_cfg = Config("alembic.ini")
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)
        command.upgrade(alembic_cfg, "head")
        yield {"database_url": database_url, "redis_url": redis_url}


@pytest.fixture(autouse=True)
async def reset_state(integration_env: dict[str, str]) -> AsyncIterator[None]:
    """Start every test with empty tables, an empty Redis and fresh singletons."""
    del integration_env
    from sporthub.db.redis import get_redis_client
    from sporthub.db.session import get_session_factory

    await _close_connections()
    _forget_singletons()
    async with get_session_factory()() as session:
        await session.execute(text("TRUNCATE sessions, users"))
        await session.commit()
    await get_redis_client().flushdb()

    yield

    await _close_connections()
    _forget_singletons()


@pytest.fixture
def db_session_factory(reset_state: None) -> async_sessionmaker[AsyncSession]:
    del reset_state
    from sporthub.db.session import get_session_factory

    return get_session_factory()


@pytest.fixture
async def db_session(
    db_session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with db_session_factory() as session:
        yield session


@pytest.fixture
async def api_client(integration_env: dict[str, str]) -> AsyncIterator[AsyncClient]:
    """HTTP client for the fully wired app, middleware included."""
    del integration_env
    from sporthub.main import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Seed accounts that can log in with `DEFAULT_PASSWORD`."""
    from sporthub.core.passwords import PasswordHasher
    from sporthub.models.user import User

    hasher = PasswordHasher(rounds=4)

    async def seed(
        email: str,
        password: str = DEFAULT_PASSWORD,
        role: str = "customer",
        is_active: bool = True,
    ) -> User:
        account = User(
            id=uuid4(),
            email=email,
            password_hash=hasher.hash_password(password),
            full_name="Integration User",
            role=role,
            is_active=is_active,
        )
        db_session.add(account)
        await db_session.commit()
        return account

    return seed

"""End-to-end auth flows against real Postgres and Redis."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sporthub.models.session import Session
from sporthub.models.user import User

REFRESH_COOKIE = "refresh_jwt"


async def _session_count(factory: async_sessionmaker[AsyncSession]) -> int:
    async with factory() as session:
        return int((await session.execute(select(func.count()).select_from(Session))).scalar_one())


async def test_register_login_refresh_logout(
    api_client: AsyncClient,
    db_session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """One client with a single User-Agent keeps its register and login sessions."""
    registered = await api_client.post(
        "/auth/register",
        json={"email": "a@x.com", "password": "pw123456", "name": "Ann"},
    )
    assert registered.status_code == 201
    register_cookie = registered.cookies[REFRESH_COOKIE]
    assert await _session_count(db_session_factory) == 1

    wrong = await api_client.post("/auth/login", json={"email": "a@x.com", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["error"]["code"] == "INVALID_CREDENTIALS"

    logged_in = await api_client.post(
        "/auth/login",
        json={"email": "A@X.COM", "password": "pw123456"},
    )
    assert logged_in.status_code == 200
    assert await _session_count(db_session_factory) == 2

    rotated = await api_client.post(
        "/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}={register_cookie}"}
    )
    assert rotated.status_code == 200
    assert await _session_count(db_session_factory) == 2

    replayed = await api_client.post(
        "/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}={register_cookie}"}
    )
    assert replayed.status_code == 401
    assert replayed.json()["error"]["code"] == "TOKEN_REVOKED"

    access_token = rotated.json()["data"]["accessToken"]
    me = await api_client.get("/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert me.json()["data"]["user"]["email"] == "a@x.com"

    logged_out = await api_client.post(
        "/auth/logout",
        params={"allDevices": "true"},
        headers={"Cookie": f"{REFRESH_COOKIE}={rotated.cookies[REFRESH_COOKIE]}"},
    )
    assert logged_out.status_code == 200
    assert await _session_count(db_session_factory) == 0


async def test_duplicate_registration_is_conflict(api_client: AsyncClient) -> None:
    payload = {"email": "dup@x.com", "password": "pw123456", "name": "Dup"}

    first = await api_client.post("/auth/register", json=payload)
    second = await api_client.post(
        "/auth/register", json={**payload, "email": "DUP@x.com"}
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "CONFLICT"


async def test_admin_delete_cascades_sessions(
    api_client: AsyncClient,
    user_factory: Callable[..., Any],
    db_session_factory: async_sessionmaker[AsyncSession],
) -> None:
    await user_factory("admin@x.com", role="admin")
    target: User = await user_factory("target@x.com")
    await api_client.post(
        "/auth/login", json={"email": "target@x.com", "password": "pw123456"}
    )
    admin_login = await api_client.post(
        "/auth/login", json={"email": "admin@x.com", "password": "pw123456"}
    )
    admin_headers = {"Authorization": f"Bearer {admin_login.json()['data']['accessToken']}"}
    assert await _session_count(db_session_factory) == 2

    response = await api_client.delete(f"/users/{target.id}", headers=admin_headers)

    assert response.status_code == 200
    assert await _session_count(db_session_factory) == 1

"""Account and admin routes against real Postgres and Redis."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from httpx import AsyncClient


async def _bearer(api_client: AsyncClient, email: str) -> dict[str, str]:
    response = await api_client.post("/auth/login", json={"email": email, "password": "pw123456"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['data']['accessToken']}"}


async def test_admin_status_and_role_changes_return_fresh_rows(
    api_client: AsyncClient, user_factory: Callable[..., Any]
) -> None:
    await user_factory("admin@x.com", role="admin")
    target = await user_factory("target@x.com")
    headers = await _bearer(api_client, "admin@x.com")

    deactivated = await api_client.patch(f"/users/{target.id}/status", headers=headers)
    promoted = await api_client.patch(
        f"/users/{target.id}/role", json={"role": "owner"}, headers=headers
    )

    assert deactivated.status_code == 200
    assert deactivated.json()["data"]["isActive"] is False
    assert promoted.status_code == 200
    assert promoted.json()["data"]["role"] == "owner"
    assert promoted.json()["data"]["updatedAt"]

    blocked = await api_client.post(
        "/auth/login", json={"email": "target@x.com", "password": "pw123456"}
    )
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "ACCOUNT_INACTIVE"


async def test_password_change_revokes_refresh_tokens(
    api_client: AsyncClient, user_factory: Callable[..., Any]
) -> None:
    await user_factory("a@x.com")
    login = await api_client.post(
        "/auth/login", json={"email": "a@x.com", "password": "pw123456"}
    )
    refresh_cookie = login.cookies["refresh_jwt"]
    headers = {"Authorization": f"Bearer {login.json()['data']['accessToken']}"}

    changed = await api_client.put(
        "/users/me/password",
        json={"oldPassword": "pw123456", "newPassword": "new-secret"},
        headers=headers,
    )
    refreshed = await api_client.post(
        "/auth/refresh", headers={"Cookie": f"refresh_jwt={refresh_cookie}"}
    )
    relogin = await api_client.post(
        "/auth/login", json={"email": "a@x.com", "password": "new-secret"}
    )

    assert changed.status_code == 200
    assert refreshed.status_code == 401
    assert refreshed.json()["error"]["code"] == "TOKEN_REVOKED"
    assert relogin.status_code == 200


async def test_admin_listing_paginates(
    api_client: AsyncClient, user_factory: Callable[..., Any]
) -> None:
    await user_factory("admin@x.com", role="admin")
    for index in range(3):
        await user_factory(f"user{index}@x.com")
    headers = await _bearer(api_client, "admin@x.com")

    response = await api_client.get(
        "/users", params={"page": 1, "limit": 2, "role": "customer"}, headers=headers
    )

    body = response.json()
    assert response.status_code == 200
    assert len(body["data"]) == 2
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}

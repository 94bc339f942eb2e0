"""SQLAlchemy credential store behavior against real Postgres."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sporthub.core.store import SQLAlchemyCredentialStore
from sporthub.errors import ConflictError
from sporthub.models.session import Session
from sporthub.models.user import User


def _session_row(user_id, user_agent: str | None, expires_at: datetime) -> Session:
    return Session(
        id=uuid4(),
        user_id=user_id,
        token_hash=f"salt${uuid4().hex}",
        user_agent=user_agent,
        expires_at=expires_at,
    )


async def test_email_lookup_is_case_insensitive(
    db_session: AsyncSession, user_factory: Callable[..., Any]
) -> None:
    user = await user_factory("Mixed.Case@x.com")
    store = SQLAlchemyCredentialStore(db_session)

    found = await store.get_user_by_email("  mixed.case@X.COM ")

    assert found is not None and found.id == user.id


async def test_unique_email_violation_becomes_conflict(
    db_session: AsyncSession, user_factory: Callable[..., Any]
) -> None:
    await user_factory("taken@x.com")
    store = SQLAlchemyCredentialStore(db_session)

    with pytest.raises(ConflictError):
        await store.add_user(
            User(
                id=uuid4(),
                email="TAKEN@x.com",
                password_hash="hash",
                full_name="Copy",
                role="customer",
                is_active=True,
            )
        )


async def test_session_queries_and_deletes(
    db_session_factory: async_sessionmaker[AsyncSession],
    user_factory: Callable[..., Any],
) -> None:
    user = await user_factory("a@x.com")
    now = datetime.now(UTC)
    async with db_session_factory() as db_session:
        store = SQLAlchemyCredentialStore(db_session)
        live_laptop = await store.add_session(
            _session_row(user.id, "laptop", now + timedelta(days=1))
        )
        await store.add_session(_session_row(user.id, "phone", now + timedelta(days=1)))
        await store.add_session(_session_row(user.id, "laptop", now - timedelta(seconds=1)))
        await store.commit()

        active = await store.list_sessions(user.id, active_at=now)
        assert len(active) == 2
        assert len(await store.list_sessions(user.id)) == 3

        assert await store.delete_session(live_laptop.id) is True
        assert await store.delete_session(live_laptop.id) is False
        assert await store.delete_expired_sessions(now) == 1
        assert await store.delete_sessions(user.id, user_agent="phone") == 1
        assert await store.delete_sessions(user.id) == 0
        await store.commit()


async def test_concurrent_delete_of_same_session_has_one_winner(
    db_session_factory: async_sessionmaker[AsyncSession],
    user_factory: Callable[..., Any],
) -> None:
    user = await user_factory("a@x.com")
    async with db_session_factory() as setup_session:
        store = SQLAlchemyCredentialStore(setup_session)
        row = await store.add_session(
            _session_row(user.id, None, datetime.now(UTC) + timedelta(days=1))
        )
        await store.commit()

    async with db_session_factory() as first, db_session_factory() as second:
        first_store = SQLAlchemyCredentialStore(first)
        second_store = SQLAlchemyCredentialStore(second)
        assert await first_store.delete_session(row.id) is True
        await first_store.commit()
        assert await second_store.delete_session(row.id) is False
        await second_store.commit()


async def test_list_users_filters_and_paginates(
    db_session: AsyncSession, user_factory: Callable[..., Any]
) -> None:
    await user_factory("owner1@x.com", role="owner")
    await user_factory("owner2@x.com", role="owner", is_active=False)
    await user_factory("player@x.com")
    store = SQLAlchemyCredentialStore(db_session)

    owners, owner_total = await store.list_users(offset=0, limit=10, role="owner")
    active_owners, _ = await store.list_users(offset=0, limit=10, role="owner", is_active=True)
    page, total = await store.list_users(offset=1, limit=1)
    searched, _ = await store.list_users(offset=0, limit=10, search="PLAYER")

    assert owner_total == 2 and len(owners) == 2
    assert [user.email for user in active_owners] == ["owner1@x.com"]
    assert total == 3 and len(page) == 1
    assert [user.email for user in searched] == ["player@x.com"]

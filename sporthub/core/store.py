"""Credential store port and its SQLAlchemy implementation."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sporthub.errors import ConflictError
from sporthub.models.session import Session
from sporthub.models.user import User


class CredentialStore(Protocol):
    """Durable, transactional storage for users and refresh-token sessions."""

    async def get_user_by_email(self, email: str) -> User | None: ...

    async def get_user_by_id(self, user_id: UUID) -> User | None: ...

    async def add_user(self, user: User) -> User: ...

    async def delete_user(self, user_id: UUID) -> bool: ...

    async def list_users(
        self,
        offset: int,
        limit: int,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]: ...

    async def add_session(self, session: Session) -> Session: ...

    async def list_sessions(
        self, user_id: UUID, active_at: datetime | None = None
    ) -> list[Session]: ...

    async def delete_session(self, session_id: UUID) -> bool: ...

    async def delete_sessions(self, user_id: UUID, user_agent: str | None = None) -> int: ...

    async def delete_expired_sessions(self, now: datetime) -> int: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SQLAlchemyCredentialStore:
    """Credential store backed by an async SQLAlchemy session."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_user_by_email(self, email: str) -> User | None:
        """Fetch a user by email, compared case-insensitively."""
        statement = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self._db.execute(statement)
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Fetch a user by primary key."""
        return await self._db.get(User, user_id)

    async def add_user(self, user: User) -> User:
        """Insert a user row, translating unique violations into conflicts."""
        self._db.add(user)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError("User with this email already exists.") from exc
        return user

    async def delete_user(self, user_id: UUID) -> bool:
        """Delete a user; sessions go with it through the foreign key cascade."""
        result = await self._db.execute(delete(User).where(User.id == user_id))
        return bool(result.rowcount)

    async def list_users(
        self,
        offset: int,
        limit: int,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        """Return one page of users and the total matching count."""
        conditions = []
        if role is not None:
            conditions.append(User.role == role)
        if is_active is not None:
            conditions.append(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(User.email.ilike(pattern), User.full_name.ilike(pattern)))

        count_statement = select(func.count()).select_from(User).where(*conditions)
        total = int((await self._db.execute(count_statement)).scalar_one())
        page_statement = (
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        users = list((await self._db.execute(page_statement)).scalars().all())
        return users, total

    async def add_session(self, session: Session) -> Session:
        """Insert a session row."""
        self._db.add(session)
        await self._db.flush()
        return session

    async def list_sessions(
        self, user_id: UUID, active_at: datetime | None = None
    ) -> list[Session]:
        """List a user's sessions, optionally only those still valid at `active_at`."""
        statement = select(Session).where(Session.user_id == user_id)
        if active_at is not None:
            statement = statement.where(Session.expires_at > active_at)
        result = await self._db.execute(statement.order_by(Session.created_at))
        return list(result.scalars().all())

    async def delete_session(self, session_id: UUID) -> bool:
        """Delete one session; False means another caller already removed it."""
        result = await self._db.execute(
            delete(Session)
            .where(Session.id == session_id)
            .execution_options(synchronize_session="fetch")
        )
        return bool(result.rowcount)

    async def delete_sessions(self, user_id: UUID, user_agent: str | None = None) -> int:
        """Delete all of a user's sessions, or only those sharing a user agent."""
        statement = delete(Session).where(Session.user_id == user_id)
        if user_agent is not None:
            statement = statement.where(Session.user_agent == user_agent)
        result = await self._db.execute(statement.execution_options(synchronize_session="fetch"))
        return int(result.rowcount or 0)

    async def delete_expired_sessions(self, now: datetime) -> int:
        """Purge sessions whose expiry has passed."""
        result = await self._db.execute(
            delete(Session)
            .where(Session.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    async def commit(self) -> None:
        await self._db.commit()

    async def rollback(self) -> None:
        await self._db.rollback()

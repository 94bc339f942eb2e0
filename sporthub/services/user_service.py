"""Account operations that touch credentials or session state."""

from __future__ import annotations

from functools import lru_cache
from uuid import UUID

import structlog

from sporthub.core.passwords import PasswordHasher, get_password_hasher
from sporthub.core.store import CredentialStore
from sporthub.errors import (
    IncorrectPasswordError,
    NotFoundError,
    PasswordSameAsOldError,
    SelfModificationError,
)
from sporthub.models.user import User

logger = structlog.get_logger(__name__)


class UserService:
    """Profile reads, password changes and admin account management.

    Every mutation that can strand a session (password change, deactivation)
    deletes the user's sessions in the same transaction.
    """

    def __init__(self, password_hasher: PasswordHasher) -> None:
        self._password_hasher = password_hasher

    async def get_profile(self, store: CredentialStore, user_id: UUID) -> User:
        """Load a user or raise a not-found error."""
        user = await store.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError.resource("User", str(user_id))
        return user

    async def change_password(
        self,
        store: CredentialStore,
        user_id: UUID,
        old_password: str,
        new_password: str,
    ) -> int:
        """Replace the password and revoke every session; return sessions revoked."""
        try:
            user = await self.get_profile(store, user_id)
            if not self._password_hasher.verify_password(old_password, user.password_hash):
                raise IncorrectPasswordError()
            if old_password == new_password:
                raise PasswordSameAsOldError()
            user.password_hash = self._password_hasher.hash_password(new_password)
            revoked = await store.delete_sessions(user.id)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("password_changed", user_id=str(user_id), revoked_sessions=revoked)
        return revoked

    async def deactivate(self, store: CredentialStore, user_id: UUID) -> User:
        """Deactivate the caller's own account and revoke its sessions."""
        try:
            user = await self.get_profile(store, user_id)
            user.is_active = False
            revoked = await store.delete_sessions(user.id)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("account_deactivated", user_id=str(user_id), revoked_sessions=revoked)
        return user

    async def list_users(
        self,
        store: CredentialStore,
        offset: int,
        limit: int,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        return await store.list_users(
            offset=offset,
            limit=limit,
            role=role,
            is_active=is_active,
            search=search,
        )

    async def toggle_status(self, store: CredentialStore, actor_id: UUID, user_id: UUID) -> User:
        """Flip a user's active flag; deactivation revokes all of its sessions."""
        self._reject_self(actor_id, user_id)
        try:
            user = await self.get_profile(store, user_id)
            user.is_active = not user.is_active
            revoked = 0 if user.is_active else await store.delete_sessions(user.id)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info(
            "account_status_changed",
            actor_id=str(actor_id),
            user_id=str(user_id),
            is_active=user.is_active,
            revoked_sessions=revoked,
        )
        return user

    async def update_role(
        self,
        store: CredentialStore,
        actor_id: UUID,
        user_id: UUID,
        role: str,
    ) -> User:
        """Assign a new role to another user."""
        self._reject_self(actor_id, user_id)
        try:
            user = await self.get_profile(store, user_id)
            previous_role = user.role
            user.role = role
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info(
            "account_role_changed",
            actor_id=str(actor_id),
            user_id=str(user_id),
            previous_role=previous_role,
            role=role,
        )
        return user

    async def delete_user(self, store: CredentialStore, actor_id: UUID, user_id: UUID) -> None:
        """Delete another user; its sessions cascade."""
        self._reject_self(actor_id, user_id)
        try:
            if not await store.delete_user(user_id):
                raise NotFoundError.resource("User", str(user_id))
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("account_deleted", actor_id=str(actor_id), user_id=str(user_id))

    @staticmethod
    def _reject_self(actor_id: UUID, user_id: UUID) -> None:
        if actor_id == user_id:
            raise SelfModificationError()


@lru_cache
def get_user_service() -> UserService:
    """Create and cache the user service."""
    return UserService(password_hasher=get_password_hasher())

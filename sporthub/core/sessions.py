"""Refresh-token session lifecycle: register, login, rotate, and revoke."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from uuid import UUID, uuid4

import structlog

from sporthub.config import get_settings
from sporthub.core.jwt import JWTService, get_jwt_service
from sporthub.core.passwords import PasswordHasher, RefreshTokenHasher, get_password_hasher
from sporthub.core.store import CredentialStore
from sporthub.errors import (
    AccountInactiveError,
    AppError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrRevokedTokenError,
    InvalidTokenError,
)
from sporthub.models.session import Session
from sporthub.models.user import DEFAULT_ROLE, User

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh JWT pair."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    """Authenticated user plus the freshly issued token pair."""

    user: User
    access_token: str
    refresh_token: str


class SessionService:
    """Service for session creation, rotation, and revocation."""

    def __init__(
        self,
        jwt_service: JWTService,
        password_hasher: PasswordHasher,
        token_hasher: RefreshTokenHasher,
        access_token_ttl: timedelta,
        refresh_token_ttl: timedelta,
    ) -> None:
        self._jwt_service = jwt_service
        self._password_hasher = password_hasher
        self._token_hasher = token_hasher
        self._access_token_ttl = access_token_ttl
        self._refresh_token_ttl = refresh_token_ttl

    async def register(
        self,
        store: CredentialStore,
        email: str,
        password: str,
        full_name: str,
        phone: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        """Create a customer account and open its first session."""
        try:
            if await store.get_user_by_email(email) is not None:
                raise ConflictError("User with this email already exists.")
            user = User(
                id=uuid4(),
                email=email.strip(),
                password_hash=self._password_hasher.hash_password(password),
                full_name=full_name,
                phone=phone,
                role=DEFAULT_ROLE,
                is_active=True,
            )
            await store.add_user(user)
            result = await self._open_session(store, user, user_agent)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("user_registered", user_id=str(user.id))
        return result

    async def login(
        self,
        store: CredentialStore,
        email: str,
        password: str,
        user_agent: str | None = None,
        single_device: bool = False,
        replace_same_agent: bool = True,
    ) -> AuthResult:
        """Verify credentials, apply the eviction policy, and open a session.

        `single_device` drops every other session. Otherwise, with
        `replace_same_agent`, sessions tagged with the same `user_agent` are
        dropped. The new session is tagged with `user_agent` either way.
        """
        try:
            user = await store.get_user_by_email(email)
            if user is None:
                self._password_hasher.dummy_verify()
                raise InvalidCredentialsError()
            if not self._password_hasher.verify_password(password, user.password_hash):
                raise InvalidCredentialsError()
            if not user.is_active:
                raise AccountInactiveError()

            if single_device:
                evicted = await store.delete_sessions(user.id)
            elif user_agent and replace_same_agent:
                evicted = await store.delete_sessions(user.id, user_agent=user_agent)
            else:
                evicted = 0
            result = await self._open_session(store, user, user_agent)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info(
            "user_logged_in",
            user_id=str(user.id),
            single_device=single_device,
            evicted_sessions=evicted,
        )
        return result

    async def refresh(
        self,
        store: CredentialStore,
        raw_refresh_token: str,
        user_agent: str | None = None,
    ) -> AuthResult:
        """Rotate a refresh token: consume its session and issue a new pair."""
        claims = self._jwt_service.verify_token(raw_refresh_token, expected_type="refresh")
        try:
            user_id = self._parse_user_id(claims.subject)
            user = await store.get_user_by_id(user_id)
            if user is None:
                raise InvalidTokenError()
            if not user.is_active:
                raise AccountInactiveError()

            sessions = await store.list_sessions(user.id, active_at=self._jwt_service.now())
            matched = next(
                (
                    row
                    for row in sessions
                    if self._token_hasher.verify_token(raw_refresh_token, row.token_hash)
                ),
                None,
            )
            if matched is None:
                logger.warning("refresh_token_rejected", user_id=str(user.id), reason="no_session")
                raise InvalidOrRevokedTokenError()
            if not await store.delete_session(matched.id):
                logger.warning("refresh_token_rejected", user_id=str(user.id), reason="replayed")
                raise InvalidOrRevokedTokenError()

            tag = user_agent if user_agent is not None else matched.user_agent
            result = await self._open_session(store, user, tag)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("session_rotated", user_id=str(user.id), previous_session_id=str(matched.id))
        return result

    async def logout(
        self,
        store: CredentialStore,
        user_id: UUID,
        token_provided: str | None = None,
        user_agent: str | None = None,
    ) -> int:
        """Revoke sessions by token, by user agent, or all; return rows deleted."""
        try:
            if token_provided:
                deleted = 0
                for row in await store.list_sessions(user_id):
                    if self._token_hasher.verify_token(token_provided, row.token_hash):
                        deleted = int(await store.delete_session(row.id))
                        break
            elif user_agent:
                deleted = await store.delete_sessions(user_id, user_agent=user_agent)
            else:
                deleted = await store.delete_sessions(user_id)
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("sessions_revoked", user_id=str(user_id), count=deleted)
        return deleted

    def verify_access_token(self, token: str) -> str | None:
        """Return the subject of a valid access token, or None."""
        try:
            return self._jwt_service.verify_token(token, expected_type="access").subject
        except AppError:
            return None

    async def purge_expired(self, store: CredentialStore) -> int:
        """Delete session rows whose refresh tokens can no longer be used."""
        try:
            purged = await store.delete_expired_sessions(self._jwt_service.now())
        except Exception:
            await store.rollback()
            raise
        await store.commit()
        logger.info("expired_sessions_purged", count=purged)
        return purged

    def issue_token_pair(self, user_id: str) -> TokenPair:
        """Issue access and refresh tokens for a user identity."""
        return TokenPair(
            access_token=self._jwt_service.issue_token(user_id, "access", self._access_token_ttl),
            refresh_token=self._jwt_service.issue_token(
                user_id, "refresh", self._refresh_token_ttl
            ),
        )

    async def _open_session(
        self, store: CredentialStore, user: User, user_agent: str | None
    ) -> AuthResult:
        """Issue a pair and persist the hashed refresh token as a new session."""
        pair = self.issue_token_pair(str(user.id))
        session_row = Session(
            id=uuid4(),
            user_id=user.id,
            token_hash=self._token_hasher.hash_token(pair.refresh_token),
            user_agent=user_agent,
            expires_at=self._jwt_service.now() + self._refresh_token_ttl,
        )
        await store.add_session(session_row)
        logger.debug("session_created", user_id=str(user.id), session_id=str(session_row.id))
        return AuthResult(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    @staticmethod
    def _parse_user_id(subject: str) -> UUID:
        try:
            return UUID(subject)
        except ValueError as exc:
            raise InvalidTokenError() from exc


@lru_cache
def get_session_service() -> SessionService:
    """Create and cache the session service from settings."""
    settings = get_settings()
    return SessionService(
        jwt_service=get_jwt_service(),
        password_hasher=get_password_hasher(),
        token_hasher=RefreshTokenHasher(),
        access_token_ttl=settings.jwt.access_ttl,
        refresh_token_ttl=settings.jwt.refresh_ttl,
    )

"""Authorization gates exposed as FastAPI dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends, Request

from sporthub.config import Settings, get_settings
from sporthub.core.jwt import JWTService, extract_bearer_token, get_jwt_service
from sporthub.core.store import CredentialStore
from sporthub.dependencies import get_credential_store
from sporthub.errors import (
    AccountInactiveError,
    AppError,
    InsufficientPermissionsError,
    InvalidTokenError,
    NoTokenError,
    UnauthorizedError,
    UserNotFoundError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the authenticated caller for the current request."""

    id: UUID
    email: str
    role: str


def extract_request_token(request: Request, cookie_name: str) -> str | None:
    """Read the access token from the bearer header, then from the cookie."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token:
        return token
    return request.cookies.get(cookie_name) or None


async def authenticate(
    token: str | None,
    store: CredentialStore,
    jwt_service: JWTService,
    enforce_active: bool,
) -> AuthContext:
    """Resolve an access token into an identity or raise the matching auth error."""
    if not token:
        raise NoTokenError()
    claims = jwt_service.verify_token(token, expected_type="access")
    try:
        user_id = UUID(claims.subject)
    except ValueError as exc:
        raise InvalidTokenError() from exc

    user = await store.get_user_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    if enforce_active and not user.is_active:
        raise AccountInactiveError()
    return AuthContext(id=user.id, email=user.email, role=user.role)


async def require_auth(
    request: Request,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthContext:
    """Require a valid access token for an existing user."""
    token = extract_request_token(request, settings.cookie.access_cookie_name)
    return await authenticate(
        token,
        store,
        jwt_service,
        enforce_active=settings.auth.enforce_active_users,
    )


async def optional_auth(
    request: Request,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthContext | None:
    """Return the caller identity when one can be established, else None."""
    token = extract_request_token(request, settings.cookie.access_cookie_name)
    if not token:
        return None
    try:
        return await authenticate(
            token,
            store,
            jwt_service,
            enforce_active=settings.auth.enforce_active_users,
        )
    except AppError as exc:
        logger.debug("optional_auth_ignored", code=exc.code)
        return None
    except Exception as exc:
        logger.warning("optional_auth_failed", error_type=type(exc).__name__)
        return None


def check_role(identity: AuthContext | None, roles: Iterable[str]) -> AuthContext:
    """Return the identity when its role is allowed; raise otherwise."""
    if identity is None:
        raise UnauthorizedError()
    if identity.role not in set(roles):
        raise InsufficientPermissionsError()
    return identity


def require_role(*roles: str) -> Callable[[AuthContext], Awaitable[AuthContext]]:
    """Require that the authenticated user has one of the allowed roles."""

    async def checker(
        identity: Annotated[AuthContext, Depends(require_auth)],
    ) -> AuthContext:
        try:
            return check_role(identity, roles)
        except InsufficientPermissionsError:
            logger.warning(
                "role_check_failed",
                user_id=str(identity.id),
                role=identity.role,
                allowed_roles=list(roles),
            )
            raise

    return checker

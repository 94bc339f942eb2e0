"""Authentication routes: register, login, refresh, logout and me."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from sporthub.authorization import AuthContext, require_auth
from sporthub.config import Settings, get_settings
from sporthub.core.jwt import JWTService, get_jwt_service
from sporthub.core.sessions import AuthResult, SessionService, get_session_service
from sporthub.core.store import CredentialStore
from sporthub.dependencies import get_credential_store
from sporthub.errors import AppError, NoTokenError
from sporthub.responses import success_response
from sporthub.schemas.auth import AuthPayload, LoginRequest, RegisterRequest
from sporthub.schemas.user import UserResponse
from sporthub.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def _user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent") or None


def set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    """Attach the refresh token cookie; its lifetime follows the refresh TTL."""
    response.set_cookie(
        key=settings.cookie.refresh_cookie_name,
        value=refresh_token,
        max_age=int(settings.jwt.refresh_ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    """Expire the refresh token cookie with the attributes it was set with."""
    response.delete_cookie(
        key=settings.cookie.refresh_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def _auth_response(
    result: AuthResult,
    settings: Settings,
    message: str,
    status_code: int = 200,
) -> JSONResponse:
    payload = AuthPayload(
        user=UserResponse.from_user(result.user),
        access_token=result.access_token,
    )
    response = success_response(data=payload, message=message, status_code=status_code)
    set_refresh_cookie(response, settings, result.refresh_token)
    return response


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    session_service: Annotated[SessionService, Depends(get_session_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Create a customer account and sign it in."""
    result = await session_service.register(
        store,
        email=payload.email,
        password=payload.password,
        full_name=payload.name,
        phone=payload.phone,
        user_agent=_user_agent(request),
    )
    return _auth_response(result, settings, "User registered successfully", status_code=201)


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    session_service: Annotated[SessionService, Depends(get_session_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Authenticate email/password credentials and open a session."""
    result = await session_service.login(
        store,
        email=payload.email,
        password=payload.password,
        user_agent=_user_agent(request),
        single_device=payload.single_device,
        replace_same_agent=settings.auth.replace_same_device_sessions,
    )
    return _auth_response(result, settings, "Login successful")


@router.post("/refresh")
async def refresh(
    request: Request,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    session_service: Annotated[SessionService, Depends(get_session_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Rotate the refresh cookie and issue a new access token."""
    raw_refresh_token = request.cookies.get(settings.cookie.refresh_cookie_name)
    if not raw_refresh_token:
        raise NoTokenError("No refresh token provided.")
    result = await session_service.refresh(
        store,
        raw_refresh_token,
        user_agent=_user_agent(request),
    )
    return _auth_response(result, settings, "Token refreshed successfully")


@router.post("/logout")
async def logout(
    request: Request,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    session_service: Annotated[SessionService, Depends(get_session_service)],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    all_devices: Annotated[bool, Query(alias="allDevices")] = False,
) -> JSONResponse:
    """Revoke the current session, or every session with `allDevices=true`."""
    raw_refresh_token = request.cookies.get(settings.cookie.refresh_cookie_name)
    if raw_refresh_token:
        try:
            user_id = UUID(jwt_service.verify_token(raw_refresh_token, "refresh").subject)
        except (AppError, ValueError):
            logger.info("logout_with_unusable_token")
        else:
            await session_service.logout(
                store,
                user_id,
                token_provided=None if all_devices else raw_refresh_token,
            )

    response = success_response(message="Logout successful")
    clear_refresh_cookie(response, settings)
    return response


@router.get("/me")
async def me(
    identity: Annotated[AuthContext, Depends(require_auth)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> JSONResponse:
    """Return the authenticated user's profile."""
    user = await user_service.get_profile(store, identity.id)
    return success_response(
        data={"user": UserResponse.from_user(user)},
        message="User retrieved successfully",
    )

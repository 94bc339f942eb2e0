"""Account routes for the signed-in user and for administrators."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from sporthub.authorization import AuthContext, require_auth, require_role
from sporthub.config import Settings, get_settings
from sporthub.core.store import CredentialStore
from sporthub.dependencies import get_credential_store
from sporthub.responses import paginated_response, success_response
from sporthub.routers.auth import clear_refresh_cookie
from sporthub.schemas.user import (
    ChangePasswordRequest,
    UpdateRoleRequest,
    UserListFilters,
    UserResponse,
)
from sporthub.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/users", tags=["users"])

Store = Annotated[CredentialStore, Depends(get_credential_store)]
Users = Annotated[UserService, Depends(get_user_service)]
Admin = Annotated[AuthContext, Depends(require_role("admin"))]


@router.get("/me")
async def get_me(
    identity: Annotated[AuthContext, Depends(require_auth)],
    store: Store,
    user_service: Users,
) -> JSONResponse:
    """Return the caller's profile."""
    user = await user_service.get_profile(store, identity.id)
    return success_response(data=UserResponse.from_user(user), message="Profile retrieved")


@router.put("/me/password")
async def change_password(
    payload: ChangePasswordRequest,
    identity: Annotated[AuthContext, Depends(require_auth)],
    store: Store,
    user_service: Users,
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Change the caller's password and sign out every device."""
    await user_service.change_password(
        store,
        identity.id,
        old_password=payload.old_password,
        new_password=payload.new_password,
    )
    response = success_response(message="Password changed successfully")
    clear_refresh_cookie(response, settings)
    return response


@router.delete("/me")
async def deactivate_me(
    identity: Annotated[AuthContext, Depends(require_auth)],
    store: Store,
    user_service: Users,
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Deactivate the caller's account and sign out every device."""
    await user_service.deactivate(store, identity.id)
    response = success_response(message="Account deactivated successfully")
    clear_refresh_cookie(response, settings)
    return response


@router.get("")
async def list_users(
    admin: Admin,
    filters: Annotated[UserListFilters, Query()],
    store: Store,
    user_service: Users,
) -> JSONResponse:
    """List users one page at a time."""
    users, total = await user_service.list_users(
        store,
        offset=filters.offset,
        limit=filters.limit,
        role=filters.role,
        is_active=filters.is_active,
        search=filters.search,
    )
    return paginated_response(
        items=[UserResponse.from_user(user) for user in users],
        total=total,
        page=filters.page,
        limit=filters.limit,
        message="Users retrieved successfully",
    )


@router.patch("/{user_id}/status")
async def toggle_status(
    user_id: UUID,
    admin: Admin,
    store: Store,
    user_service: Users,
) -> JSONResponse:
    """Activate or deactivate another user."""
    user = await user_service.toggle_status(store, actor_id=admin.id, user_id=user_id)
    state = "activated" if user.is_active else "deactivated"
    return success_response(data=UserResponse.from_user(user), message=f"User {state} successfully")


@router.patch("/{user_id}/role")
async def update_role(
    user_id: UUID,
    payload: UpdateRoleRequest,
    admin: Admin,
    store: Store,
    user_service: Users,
) -> JSONResponse:
    """Assign a role to another user."""
    user = await user_service.update_role(
        store,
        actor_id=admin.id,
        user_id=user_id,
        role=payload.role,
    )
    return success_response(data=UserResponse.from_user(user), message="User role updated")


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    admin: Admin,
    store: Store,
    user_service: Users,
) -> JSONResponse:
    """Delete another user together with its sessions."""
    await user_service.delete_user(store, actor_id=admin.id, user_id=user_id)
    return success_response(message="User deleted successfully")

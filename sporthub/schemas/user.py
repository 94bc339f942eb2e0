"""User profile and account-management schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from sporthub.models.user import User, UserRole
from sporthub.schemas.base import CamelModel


class UserResponse(CamelModel):
    """Public view of a user; never carries the password hash."""

    id: UUID
    email: str
    name: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            name=user.full_name,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class ChangePasswordRequest(CamelModel):
    """Password change payload."""

    old_password: str = Field(min_length=1, max_length=100)
    new_password: str = Field(min_length=6, max_length=100)


class UpdateRoleRequest(CamelModel):
    """Admin role assignment payload."""

    role: UserRole


class UserListFilters(CamelModel):
    """Query filters for the admin user listing."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    role: UserRole | None = None
    is_active: bool | None = None
    search: str | None = Field(default=None, max_length=100)

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

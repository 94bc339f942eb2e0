"""Authentication request and response schemas."""

from __future__ import annotations

import re

from pydantic import Field, field_validator

from sporthub.schemas.base import CamelModel
from sporthub.schemas.user import UserResponse

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ()-]{5,30}$")


def _normalize_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address.")
    return value


class RegisterRequest(CamelModel):
    """Self-service registration payload."""

    email: str = Field(max_length=320)
    password: str = Field(min_length=6, max_length=100)
    name: str = Field(min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=32)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if len(stripped) < 2:
            raise ValueError("Name must be at least 2 characters.")
        return stripped

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        if not _PHONE_PATTERN.match(value.strip()):
            raise ValueError("Please provide a valid phone number.")
        return value.strip()


class LoginRequest(CamelModel):
    """Password login payload."""

    email: str = Field(max_length=320)
    password: str = Field(min_length=1, max_length=100)
    single_device: bool = False

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class AuthPayload(CamelModel):
    """Data returned by register, login and refresh."""

    user: UserResponse
    access_token: str

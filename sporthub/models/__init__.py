"""ORM model exports."""

from sporthub.models.session import Session
from sporthub.models.user import DEFAULT_ROLE, USER_ROLES, User, UserRole

__all__ = ["DEFAULT_ROLE", "Session", "USER_ROLES", "User", "UserRole"]

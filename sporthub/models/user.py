"""User ORM model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Index, String, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sporthub.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from sporthub.models.session import Session

UserRole = Literal["customer", "owner", "admin"]
USER_ROLES: tuple[str, ...] = ("customer", "owner", "admin")
DEFAULT_ROLE: UserRole = "customer"


class User(Base, TimestampMixin):
    """Account that can authenticate against the platform."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('customer', 'owner', 'admin')", name="role_allowed"),
        Index("uq_users_email_lower", text("lower(email)"), unique=True),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=DEFAULT_ROLE)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sessions: Mapped[list[Session]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

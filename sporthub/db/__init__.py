"""Database package exports."""

from sporthub.db.base import Base, TimestampMixin
from sporthub.db.session import (
    dispose_engine,
    get_db_session,
    get_engine,
    get_session_factory,
    session_scope,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "dispose_engine",
    "get_db_session",
    "get_engine",
    "get_session_factory",
    "session_scope",
]

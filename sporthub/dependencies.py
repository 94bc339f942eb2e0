"""Shared FastAPI dependency helpers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sporthub.core.store import CredentialStore, SQLAlchemyCredentialStore
from sporthub.db.session import get_db_session


async def get_database_session() -> AsyncGenerator[AsyncSession, None]:
    """Expose the request-scoped async database session dependency."""
    async for session in get_db_session():
        yield session


def get_credential_store(
    db_session: Annotated[AsyncSession, Depends(get_database_session)],
) -> CredentialStore:
    """Wrap the request-scoped database session in a credential store."""
    return SQLAlchemyCredentialStore(db_session)

"""CLI entrypoints for auth service operational tasks."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from uuid import uuid4

from sporthub.config import configure_structlog, get_settings
from sporthub.core.passwords import get_password_hasher
from sporthub.core.sessions import get_session_service
from sporthub.core.store import SQLAlchemyCredentialStore
from sporthub.db.session import dispose_engine, session_scope
from sporthub.errors import ConflictError
from sporthub.models.user import User


async def _run_purge_expired_sessions() -> int:
    """Delete session rows whose refresh tokens have expired."""
    try:
        async with session_scope() as db_session:
            purged = await get_session_service().purge_expired(
                SQLAlchemyCredentialStore(db_session)
            )
    finally:
        await dispose_engine()
    print(json.dumps({"purged": purged}))
    return 0


async def _run_create_admin(email: str, password: str, name: str) -> int:
    """Create an active admin account."""
    try:
        async with session_scope() as db_session:
            store = SQLAlchemyCredentialStore(db_session)
            if await store.get_user_by_email(email) is not None:
                raise ConflictError("User with this email already exists.")
            user = User(
                id=uuid4(),
                email=email.strip(),
                password_hash=get_password_hasher().hash_password(password),
                full_name=name,
                role="admin",
                is_active=True,
            )
            await store.add_user(user)
            await store.commit()
    except ConflictError as exc:
        print(json.dumps({"error": exc.code, "message": exc.message}))
        return 1
    finally:
        await dispose_engine()
    print(json.dumps({"id": str(user.id), "email": user.email, "role": user.role}))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m sporthub.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser(
        "purge-expired-sessions",
        help="Delete refresh-token sessions that are past their expiry.",
    )

    admin_parser = subcommands.add_parser("create-admin", help="Create an admin account.")
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--password", required=True)
    admin_parser.add_argument("--name", default="Administrator")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_structlog(get_settings())
    if args.command == "purge-expired-sessions":
        return asyncio.run(_run_purge_expired_sessions())
    if args.command == "create-admin":
        if len(args.password) < 6:
            parser.error("--password must be at least 6 characters")
        return asyncio.run(
            _run_create_admin(email=args.email, password=args.password, name=args.name)
        )
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())

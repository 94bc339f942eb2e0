"""Password hashing and refresh-token hashing at rest."""

from __future__ import annotations

import hmac
import secrets
from functools import lru_cache
from hashlib import sha256

from passlib.context import CryptContext

from sporthub.config import get_settings

_SALT_BYTES = 16
_SEPARATOR = "$"


class PasswordHasher:
    """Bcrypt password hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 10) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash_password(self, password: str) -> str:
        """Generate a bcrypt hash for the provided password."""
        return str(self._context.hash(password))

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a plaintext password against the stored bcrypt hash."""
        return bool(self._context.verify(password, password_hash))

    def dummy_verify(self) -> None:
        """Spend the same time as a real verification for unknown accounts."""
        self._context.dummy_verify()


class RefreshTokenHasher:
    """Salted HMAC-SHA256 digests for refresh tokens stored in session rows."""

    def hash_token(self, raw_token: str) -> str:
        """Hash a raw token with a fresh random salt as `salt$digest`."""
        salt = secrets.token_hex(_SALT_BYTES)
        return f"{salt}{_SEPARATOR}{self._digest(salt, raw_token)}"

    def verify_token(self, raw_token: str, token_hash: str) -> bool:
        """Compare a raw token against a stored `salt$digest` in constant time."""
        salt, separator, expected = token_hash.partition(_SEPARATOR)
        if not separator or not salt or not expected:
            return False
        return hmac.compare_digest(
            self._digest(salt, raw_token).encode("utf-8"), expected.encode("utf-8")
        )

    @staticmethod
    def _digest(salt: str, raw_token: str) -> str:
        return hmac.new(salt.encode("utf-8"), raw_token.encode("utf-8"), sha256).hexdigest()


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Build and cache the password hasher from settings."""
    return PasswordHasher(rounds=get_settings().password.bcrypt_rounds)

"""JWT issuance and verification for access and refresh tokens."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Literal
from uuid import uuid4

from jose import jwt
from jose.exceptions import JWTError

from sporthub.config import get_settings
from sporthub.core.durations import ConfigurationError
from sporthub.errors import ExpiredTokenError, InvalidTokenError, WrongTokenTypeError

TokenType = Literal["access", "refresh"]
SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
BEARER_SCHEME = "Bearer"


def utcnow() -> datetime:
    """Return the current UTC time; the single clock for expiry decisions."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims extracted from a token."""

    subject: str
    token_type: TokenType
    token_id: str
    issued_at: datetime
    expires_at: datetime


class JWTService:
    """Issue and verify HMAC-signed JWTs."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret_key or not secret_key.strip():
            raise ConfigurationError("JWT secret key is not configured.")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigurationError(f"Unsupported JWT algorithm: {algorithm!r}")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._clock = clock

    def issue_token(self, subject: str, token_type: TokenType, ttl: timedelta) -> str:
        """Issue a signed JWT for the subject with the given lifetime."""
        issued_at = self._clock()
        expires_at = issued_at + ttl
        payload = {
            "jti": str(uuid4()),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "sub": subject,
            "type": token_type,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify_token(self, token: str, expected_type: TokenType | None = None) -> TokenClaims:
        """Verify signature, expiry, and token type; return the claims."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise InvalidTokenError() from exc
        if header.get("alg") != self._algorithm:
            raise InvalidTokenError()

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "verify_aud": False,
                    "verify_exp": False,
                    "require_jti": True,
                    "require_iat": True,
                    "require_exp": True,
                    "require_sub": True,
                },
            )
        except JWTError as exc:
            raise InvalidTokenError() from exc

        expires_epoch = payload.get("exp")
        issued_epoch = payload.get("iat")
        if not isinstance(expires_epoch, int) or not isinstance(issued_epoch, int):
            raise InvalidTokenError()
        # Expired at exactly exp, not one second later.
        if int(self._clock().timestamp()) >= expires_epoch:
            raise ExpiredTokenError()

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError()
        token_type = str(payload.get("type", ""))
        if token_type not in ("access", "refresh"):
            raise InvalidTokenError()
        if expected_type and token_type != expected_type:
            raise WrongTokenTypeError()

        return TokenClaims(
            subject=subject,
            token_type=token_type,  # type: ignore[arg-type]
            token_id=str(payload["jti"]),
            issued_at=datetime.fromtimestamp(issued_epoch, UTC),
            expires_at=datetime.fromtimestamp(expires_epoch, UTC),
        )

    def now(self) -> datetime:
        """Expose the codec clock so persisted expiries share one time source."""
        return self._clock()


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from `Bearer <token>`; any other shape yields None."""
    if not header_value:
        return None
    parts = header_value.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME:
        return None
    return parts[1] or None


@lru_cache
def get_jwt_service() -> JWTService:
    """Build and cache the JWT service from application settings."""
    settings = get_settings()
    return JWTService(
        secret_key=settings.jwt.secret_key.get_secret_value(),
        algorithm=settings.jwt.algorithm,
    )

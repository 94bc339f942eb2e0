"""Application settings and logging configuration."""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sporthub.core.durations import ConfigurationError, parse_duration


class AppSettings(BaseModel):
    """Deployment identity, bind address and log threshold."""

    environment: Literal["development", "staging", "production"]
    service: str = "sporthub-auth"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class DatabaseSettings(BaseModel):
    """PostgreSQL connection and pool sizing."""

    url: str = Field(description="postgresql+asyncpg:// URL of the credential database.")
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    echo: bool = False

    @field_validator("url")
    @classmethod
    def require_asyncpg(cls, value: str) -> str:
        if not value.startswith("postgresql+asyncpg://"):
            raise ValueError("DATABASE__URL needs the postgresql+asyncpg:// scheme.")
        return value


class RedisSettings(BaseModel):
    """Redis backing the rate limiter."""

    url: str

    @field_validator("url")
    @classmethod
    def require_redis_scheme(cls, value: str) -> str:
        if value.split("://", 1)[0] not in ("redis", "rediss"):
            raise ValueError("REDIS__URL needs the redis:// or rediss:// scheme.")
        return value


class JWTSettings(BaseModel):
    """JWT signing secret and token lifetimes."""

    secret_key: SecretStr
    algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    access_token_ttl: str = "15m"
    refresh_token_ttl: str = "30d"

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, value: SecretStr) -> SecretStr:
        """Refuse to start without a signing secret."""
        if not value.get_secret_value().strip():
            raise ValueError("jwt.secret_key must not be empty.")
        return value

    @field_validator("access_token_ttl", "refresh_token_ttl")
    @classmethod
    def validate_ttl(cls, value: str) -> str:
        """Fail fast on malformed or zero token lifetimes."""
        try:
            ttl = parse_duration(value)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        if ttl <= timedelta(0):
            raise ValueError(f"Token lifetime must be positive: {value!r}")
        return value

    @property
    def access_ttl(self) -> timedelta:
        return parse_duration(self.access_token_ttl)

    @property
    def refresh_ttl(self) -> timedelta:
        return parse_duration(self.refresh_token_ttl)


class PasswordSettings(BaseModel):
    """Password hashing cost settings."""

    bcrypt_rounds: int = Field(default=10, ge=4, le=31)


class CookieSettings(BaseModel):
    """Cookie names and transport flags for browser clients."""

    refresh_cookie_name: str = "refresh_jwt"
    access_cookie_name: str = "jwt"
    secure: bool | None = Field(
        default=None,
        description="Secure flag override; unset means secure only in production.",
    )


class AuthSettings(BaseModel):
    """Authorization policy switches."""

    enforce_active_users: bool = True
    replace_same_device_sessions: bool = False


class RateLimitSettings(BaseModel):
    """Per-client request budgets for the credential endpoints."""

    enabled: bool = True
    login_requests_per_minute: int = Field(default=10, ge=1)
    token_requests_per_minute: int = Field(default=30, ge=1)


class Settings(BaseSettings):
    """Service configuration read from `SECTION__FIELD` environment variables."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings
    database: DatabaseSettings
    redis: RedisSettings
    jwt: JWTSettings
    password: PasswordSettings = PasswordSettings()
    cookie: CookieSettings = CookieSettings()
    auth: AuthSettings = AuthSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()

    @property
    def cookie_secure(self) -> bool:
        """Resolve the Secure cookie flag for the current environment."""
        if self.cookie.secure is not None:
            return self.cookie.secure
        return self.app.environment == "production"


def _service_fields(environment: str, service: str) -> structlog.types.Processor:
    """Build a processor stamping every event with deployment and request identity."""

    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        bound = structlog.contextvars.get_contextvars()
        event_dict.setdefault("correlation_id", str(bound.get("correlation_id", "unknown")))
        event_dict.setdefault("environment", environment)
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_structlog(settings: Settings) -> None:
    """Route structlog events to stdout as one JSON object per line."""
    threshold = logging.getLevelName(settings.app.log_level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            _service_fields(settings.app.environment, settings.app.service),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Read settings once per process."""
    return Settings()

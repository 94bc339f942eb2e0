"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sporthub.config import configure_structlog, get_settings
from sporthub.db.redis import close_redis_client, get_redis_client
from sporthub.db.session import dispose_engine
from sporthub.error_handlers import register_exception_handlers
from sporthub.middleware.correlation_id import CorrelationIdMiddleware
from sporthub.middleware.logging import LoggingMiddleware
from sporthub.middleware.rate_limit import RateLimitMiddleware, build_path_limits
from sporthub.middleware.security_headers import SecurityHeadersMiddleware
from sporthub.routers import auth, health, users


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Release pooled connections on shutdown."""
    yield
    await dispose_engine()
    await close_redis_client()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_structlog(settings)

    app = FastAPI(title=settings.app.service, lifespan=lifespan)
    if settings.rate_limit.enabled:
        app.add_middleware(
            RateLimitMiddleware,
            redis_client=get_redis_client(),
            path_limits=build_path_limits(settings.rate_limit),
        )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.app.environment == "production",
    )
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app, settings.app.environment)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(health.router)
    return app


app = create_app()

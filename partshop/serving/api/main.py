"""
FastAPI Application Factory

Creates and configures the main API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import structlog

from partshop.config import Settings, get_settings
from partshop.config.logging import configure_logging
from partshop.database.connection import Database
from partshop.serving.api.dependencies import Commerce
from partshop.serving.api.errors import register_error_handlers
from partshop.serving.api.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from partshop.serving.api.routes import (
    admin_router,
    cart_router,
    health_router,
    orders_router,
)
from partshop.serving.cache import close_redis, init_redis

logger = structlog.get_logger(__name__)


def _build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect the database and cache on startup, release them on shutdown."""
        configure_logging(settings.monitoring.log_level)

        logger.info("Starting forklift parts store API", environment=settings.app_env)

        database = Database.from_settings(settings.database)
        await database.connect()
        if settings.is_development:
            await database.create_all()
            logger.info("Database schema ensured")

        redis_client = await init_redis(settings.redis)

        app.state.redis = redis_client
        app.state.commerce = Commerce.build(database, redis_client, settings.commerce)

        yield

        logger.info("Shutting down...")
        await close_redis(redis_client)
        await database.dispose()

    return lifespan


def create_api_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Services are attached to ``app.state`` by the lifespan handler; callers
    that manage their own database (tests, scripts) may set
    ``app.state.commerce`` directly instead.

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Forklift Parts Store API",
        description="Cart, checkout and order management for the spare-parts storefront",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=_build_lifespan(settings),
    )

    # Add CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_error_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(cart_router, prefix="/api/v1/cart", tags=["Cart"])
    app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin"])

    return app

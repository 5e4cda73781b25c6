"""
Chat Service - FastAPI Application Entry Point.

This module provides the main FastAPI application instance with all
middleware, routes, exception handlers, and lifecycle management.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_service.api.middleware.logging_middleware import RequestContextMiddleware
from chat_service.api.routes import chat_router, health_router
from chat_service.config.constants import SERVICE_DESCRIPTION, SERVICE_NAME, SERVICE_VERSION, SHUTDOWN_TIMEOUT
from chat_service.config.settings import Settings, get_settings
from chat_service.database.mongodb import MongoDBConfig, MongoDBConnectionManager, MongoIndexManager
from chat_service.database.redis_client import RedisConfig, RedisConnectionManager
from chat_service.exceptions.base_exceptions import setup_exception_handlers
from chat_service.services.rate_governor import RateGovernor
from chat_service.services.service_container import ServiceContainer
from chat_service.utils.logger import get_logger, setup_logging

# Initialize logger
logger = get_logger(__name__)


def create_app(container: Optional[ServiceContainer] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application instance.

    Args:
        container: Prebuilt services; when given, no connections are opened
        settings: Settings override; defaults to ``get_settings()``
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup and shutdown events."""
        setup_logging(settings.LOG_LEVEL.value, settings.LOG_FORMAT)
        logger.info(
            "Starting Chat Service...",
            version=SERVICE_VERSION,
            environment=settings.ENVIRONMENT.value,
            debug=settings.DEBUG
        )

        mongo: Optional[MongoDBConnectionManager] = None
        redis: Optional[RedisConnectionManager] = None

        if app.state.container is None:
            mongo = MongoDBConnectionManager(MongoDBConfig.from_settings(settings))
            redis = RedisConnectionManager(RedisConfig.from_settings(settings))

            database = await mongo.connect()
            await MongoIndexManager(database).create_chat_indexes()
            redis_client = await redis.connect()

            app.state.container = ServiceContainer.from_connections(settings, database, redis_client)

        sweep_task = asyncio.create_task(
            sweep_rate_windows(app.state.container.governor, settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS)
        )
        logger.info("Chat Service startup completed successfully")

        try:
            yield
        finally:
            logger.info("Shutting down Chat Service...")
            sweep_task.cancel()
            await asyncio.gather(sweep_task, return_exceptions=True)

            if mongo is not None or redis is not None:
                await asyncio.wait_for(
                    _close_connections(app.state.container, mongo, redis),
                    timeout=SHUTDOWN_TIMEOUT
                )
            logger.info("Chat Service shutdown completed successfully")

    app = FastAPI(
        title="Chat Service API",
        description=SERVICE_DESCRIPTION,
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.settings = settings

    setup_middleware(app, settings)
    setup_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(chat_router)

    return app


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Accept"],
        expose_headers=["X-Request-ID", "X-Process-Time", "Retry-After"],
    )

    # Outermost: added last
    app.add_middleware(RequestContextMiddleware)


async def sweep_rate_windows(governor: RateGovernor, interval: float) -> None:
    """Periodically drop elapsed rate windows."""
    while True:
        try:
            await asyncio.sleep(interval)
            governor.purge_stale()
        except asyncio.CancelledError:
            logger.debug("Rate window sweep cancelled")
            raise
        except Exception as e:
            logger.error("Rate window sweep failed", error=str(e))


async def _close_connections(
        container: ServiceContainer,
        mongo: Optional[MongoDBConnectionManager],
        redis: Optional[RedisConnectionManager]
) -> None:
    await container.aclose()
    if redis is not None:
        await redis.disconnect()
    if mongo is not None:
        await mongo.disconnect()


def main() -> None:
    """Main entry point for running the service."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL.value, settings.LOG_FORMAT)

    uvicorn_config = {
        "app": "chat_service.main:app",
        "host": settings.HOST,
        "port": settings.PORT,
        "log_level": settings.LOG_LEVEL.value.lower(),
        "log_config": None,  # logging is configured by setup_logging
        "access_log": False,
        "server_header": False,
    }

    if settings.is_development():
        uvicorn_config.update({
            "reload": settings.DEBUG,
            "reload_dirs": ["chat_service/"],
        })

    logger.info(
        "Starting Chat Service server",
        service=SERVICE_NAME,
        host=settings.HOST,
        port=settings.PORT,
        environment=settings.ENVIRONMENT.value,
        debug=settings.DEBUG
    )

    uvicorn.run(**uvicorn_config)


# Create the FastAPI app instance
app = create_app()

if __name__ == "__main__":
    main()

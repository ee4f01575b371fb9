"""
Main entry point for the FastAPI application.
Configures lifespan events and mounts routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import router as api_router
from src.config.logging_config import setup_logging
from src.config.settings import settings
from src.services.room_registry import room_registry
from src.services.websocket import manager

logger = logging.getLogger(__name__)


# Disable these warnings as they are false positives caused by fasapi syntax
# pylint: disable=redefined-outer-name
# pylint: disable=unused-argument
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application Lifecycle Manager.
    Handles startup (registry init) and shutdown (listeners stop, registry close).
    """
    setup_logging(settings.log_level, settings.log_pretty_meta, settings.log_max_meta_length)
    logger.info("Starting %s...", settings.app_name, extra={"identifier": "app"})

    if not await room_registry.init():
        logger.error(
            "Room registry unavailable, presence routes will answer 503",
            extra={"identifier": "app", "meta": {"keyspace": settings.room_registry_db}},
        )

    yield

    logger.info("Shutting down...", extra={"identifier": "app"})
    await manager.close()
    await room_registry.destroy()


def create_app() -> FastAPI:
    """Factory to create the app."""
    application = FastAPI(
        title=settings.app_name,
        description="Session-less REST and WebSocket backend with cluster-wide room presence",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    application.include_router(api_router, prefix="/api")

    return application


app = create_app()

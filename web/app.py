"""FastAPI application factory and main app.

This module creates the FastAPI application with all routers and
dependency injection configured. Routes are thin wrappers around the
services in gearforge.builds.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gearforge import __version__
from gearforge.config import get_settings
from gearforge.db import create_all_tables, get_engine, get_session_factory
from web.routers import config, health, temp_builds, validation


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Configures logging and initializes database tables on startup.
    """
    logging.basicConfig(level=get_settings().log_level)
    engine = get_engine()
    create_all_tables(engine)
    app.state.session_factory = get_session_factory(engine)
    yield
    engine.dispose()


def include_routers(application: FastAPI) -> None:
    """Mount all API routers on an application."""
    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(
        temp_builds.router, prefix="/api/builds/temp", tags=["temp-builds"]
    )
    application.include_router(
        validation.router, prefix="/api/builds", tags=["validation"]
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application.
    """
    application = FastAPI(
        title="gearforge Build API",
        description="HTTP API for composing, validating and sharing drone builds",
        version=__version__,
        lifespan=lifespan,
    )
    include_routers(application)
    return application


# Create the default application instance
app = create_app()

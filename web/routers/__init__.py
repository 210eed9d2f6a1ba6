"""Router modules for FastAPI web API."""

from web.routers import config, health, temp_builds, validation

__all__ = ["config", "health", "temp_builds", "validation"]

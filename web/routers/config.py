"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter

from gearforge.config import get_settings

router = APIRouter()


@router.get("")
def get_config() -> dict[str, Any]:
    """Get effective configuration.

    The access token is never exposed.

    Returns:
        Current configuration as JSON.
    """
    settings = get_settings()
    return {
        "db_url": settings.db_url,
        "api_base_url": settings.api_base_url,
        "public_base_url": settings.public_base_url,
        "temp_build_ttl_hours": settings.temp_build_ttl_hours,
        "log_level": settings.log_level,
        "request_timeout": settings.request_timeout,
        "asset_timeout": settings.asset_timeout,
    }

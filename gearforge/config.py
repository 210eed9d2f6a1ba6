"""Configuration settings for gearforge.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "gearforge" / "db.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the GEARFORGE_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="GEARFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL",
    )

    # Remote API
    api_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the build and asset API",
    )
    public_base_url: str = Field(
        default="",
        description="Origin prepended to share URLs (empty for relative URLs)",
    )
    access_token: str | None = Field(
        default=None,
        description="Bearer token sent with credentialed asset requests",
    )

    # Temporary builds
    temp_build_ttl_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 30,
        description="Lifetime of a temporary build before it expires",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for build API requests",
    )
    asset_timeout: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for credentialed asset fetches",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The access token is never rendered.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2, exclude={"access_token"})


__all__ = ["Settings", "get_settings", "print_settings_json"]

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    This uses pydantic-settings so that we get type validation and defaults.
    Required values are left optional here and checked once at startup, so
    that importing the app (tests, migrations) never fails on a partial env.
    """

    # App basics
    ENV: Literal["development", "staging", "production", "test"] = "development"
    """Environment mode: affects logging and table auto-creation."""

    DEBUG: bool = False
    """Enable debug mode: SQL echo and verbose logging."""

    # Server
    HOST: str = "0.0.0.0"
    """Interface the HTTP server binds to."""

    PORT: Optional[int] = None
    """Listen port for the HTTP server."""

    CORS_ORIGINS: str = "*"
    """Comma separated list of allowed CORS origins."""

    # DB
    DATABASE_URL: Optional[str] = None
    """Database connection URL (e.g. postgresql+asyncpg://...)."""

    # STS vending service
    STS_API_BASE_URL: Optional[str] = None
    """Base URL of the STS token vending API."""

    STS_USER_IDS: str = ""
    """Comma separated, ordered pool of STS account ids."""

    STS_USER_PASSWORD: Optional[str] = None
    """Password shared by every STS account in the pool."""

    STS_METER_TYPE: str = "1"
    """Meter type discriminator sent to STS (1 = electric)."""

    STS_TIMEOUT_SECONDS: float = 30.0
    """Timeout applied to each STS request."""

    # Model config
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def sts_user_ids(self) -> list[str]:
        return [uid.strip() for uid in self.STS_USER_IDS.split(",") if uid.strip()]

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def validate_required(self) -> None:
        """Fail fast when the process-level settings are not configured."""
        missing = [
            name
            for name, value in (("DATABASE_URL", self.DATABASE_URL), ("PORT", self.PORT))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Required settings are not defined: {', '.join(missing)}"
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing .env repeatedly."""
    return Settings()

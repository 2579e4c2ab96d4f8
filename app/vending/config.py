"""
STS gateway configuration.

Built once from application settings at startup and passed to the token
issuer; a missing base URL, password or account pool aborts startup.
"""

from typing import List
from pydantic import BaseModel, Field, ValidationError, field_validator

from app.core.config import ConfigurationError, Settings

VENDING_TOKEN_PATH = "/api/Power/GetVendingToken"


class StsConfig(BaseModel):
    """Static configuration for the STS token vending API."""

    base_url: str = Field(min_length=1, description="STS API base URL")
    user_ids: List[str] = Field(
        min_length=1, description="Ordered pool of STS account ids"
    )
    password: str = Field(min_length=1, description="Password shared by the pool")
    meter_type: str = Field(default="1", description="Meter type (1 = electric)")
    timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds"
    )
    token_path: str = Field(
        default=VENDING_TOKEN_PATH, description="Path of the vending endpoint"
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("user_ids")
    @classmethod
    def _clean_user_ids(cls, value: List[str]) -> List[str]:
        cleaned = [uid.strip() for uid in value if uid and uid.strip()]
        if not cleaned:
            raise ValueError("at least one STS user id is required")
        return cleaned

    @classmethod
    def from_settings(cls, settings: Settings) -> "StsConfig":
        """
        Build the gateway configuration from application settings.

        Raises:
            ConfigurationError: If the STS settings are missing or invalid
        """
        user_ids = settings.sts_user_ids
        if not user_ids or not settings.STS_API_BASE_URL or not settings.STS_USER_PASSWORD:
            raise ConfigurationError(
                "STS API environment variables (STS_API_BASE_URL, STS_USER_IDS, "
                "STS_USER_PASSWORD) are not correctly defined."
            )

        try:
            return cls(
                base_url=settings.STS_API_BASE_URL,
                user_ids=user_ids,
                password=settings.STS_USER_PASSWORD,
                meter_type=settings.STS_METER_TYPE,
                timeout=settings.STS_TIMEOUT_SECONDS,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid STS configuration: {e}") from e

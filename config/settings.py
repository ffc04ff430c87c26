"""
Runtime settings loaded from environment variables.

Uses pydantic-settings for validation.  Every variable carries the
BACKOFFICE_ prefix, e.g. BACKOFFICE_API_BASE_URL, BACKOFFICE_AUTH_TOKEN.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.pricing import DEFAULT_CONVERSION_RATE


class Settings(BaseSettings):
    """Back-office client settings."""

    model_config = SettingsConfigDict(
        env_prefix="BACKOFFICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # BACKEND API
    # ===================
    api_base_url: str = Field(
        default="http://localhost:5001/api",
        description="Base URL of the back-office REST API",
    )
    auth_token: Optional[str] = Field(
        None,
        description="Bearer token sent with every request",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Transport timeout for CRUD calls",
    )

    # ===================
    # CONVERSION RATE
    # ===================
    default_conversion_rate: float = Field(
        default=DEFAULT_CONVERSION_RATE,
        gt=0,
        description="Rate used when neither cache nor backend has one",
    )
    conversion_rate_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for the conversion-rate lookup; slower lookups fall back",
    )
    conversion_rate_refresh_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Interval of the background conversion-rate refresh",
    )
    conversion_rate_cache_path: Path = Field(
        default=Path(".cache/settings.json"),
        description="JSON key-value file holding the last known conversion rate",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings instance."""
    return Settings()

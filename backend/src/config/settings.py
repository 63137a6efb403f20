"""
Application settings configuration for FamilyHub.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        FAMHUB_FEED_PRODUCT_ID: PRODID written into every calendar feed
        FAMHUB_FEED_UID_DOMAIN: Host part of generated VEVENT UIDs
        FAMHUB_FEED_HORIZON_DAYS: Days of occurrences published ahead of today (default: 365)
        FAMHUB_CORS_ORIGINS: Comma-separated list of allowed CORS origins
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    feed_product_id: str = Field(
        default="-//FamilyHub//Family Calendar//EN",
        validation_alias="FAMHUB_FEED_PRODUCT_ID",
        description="PRODID property of generated calendar documents"
    )

    # UIDs must stay stable across releases or subscribed calendars duplicate
    # every occurrence; change only together with a feed migration notice.
    feed_uid_domain: str = Field(
        default="familyhub.app",
        validation_alias="FAMHUB_FEED_UID_DOMAIN",
        description="Domain suffix used in VEVENT UIDs"
    )

    feed_horizon_days: int = Field(
        default=365,
        validation_alias="FAMHUB_FEED_HORIZON_DAYS",
        ge=1,
        le=1095,
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="FAMHUB_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins"
    )

    @field_validator("feed_uid_domain")
    @classmethod
    def validate_uid_domain(cls, v: str) -> str:
        """UID domain must be a bare host name."""
        v = v.strip()
        if not v or "@" in v or "/" in v:
            raise ValueError("FAMHUB_FEED_UID_DOMAIN must be a bare domain name")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Get the configured CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()

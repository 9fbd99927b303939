"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from messenger.constants import DEFAULT_WEBHOOK_PATH, FACEBOOK_API_TIMEOUT_SECONDS


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Nothing is validated for consistency at startup: a missing app secret
    with signature verification enabled only surfaces when a webhook
    delivery arrives.
    """

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Facebook Configuration
    facebook_verify_signature: bool = Field(
        default=False,
        description="Verify the X-Hub-Signature header of every webhook delivery",
    )
    facebook_app_secret: str | None = Field(
        default=None,
        description="Facebook App secret (required when signature verification is on)",
    )
    facebook_verify_token: str = Field(
        default="", description="Webhook verification token"
    )
    facebook_page_access_token: str = Field(
        default="", description="Facebook Page access token"
    )
    webhook_path: str = Field(
        default=DEFAULT_WEBHOOK_PATH,
        description="Path the webhook endpoint is mounted on",
    )

    # Environment
    env: Literal["local", "railway", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    # ==========================================================================
    # Timeout Configuration
    # ==========================================================================

    facebook_api_timeout_seconds: float = Field(
        default=FACEBOOK_API_TIMEOUT_SECONDS,
        description="Timeout for Facebook Graph API calls (seconds)",
    )
    dispatch_deadline_seconds: float | None = Field(
        default=None,
        description=(
            "Deadline handed to webhook handlers through their dispatch context "
            "(cooperative; handlers are never interrupted)"
        ),
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

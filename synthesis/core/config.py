"""Configuration management for the synthesis engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every backing service is optional. A missing store or completion service
    degrades the worksheet to local-only mode instead of failing at boot.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase document store (optional: local-only mode when unset)
    SUPABASE_URL: str | None = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, description="Supabase service role key"
    )

    # Anthropic completion service (optional: suggestions degrade to empty)
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    SUGGESTIONS_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for suggestions, coaching and titles"
    )
    SUGGESTIONS_MAX_TOKENS: int = Field(default=1024, description="Max tokens per completion")

    # Environment
    SYNTHESIS_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: str | None = Field(default=None, description="Overrides the environment log level")

    # Coaching loop
    COACHING_DEBOUNCE_SECONDS: float = Field(
        default=1.5, description="Quiet period before a coaching request is sent"
    )
    COACHING_MIN_CHARS: int = Field(
        default=15, description="Drafts shorter than this are never coached"
    )

    # Error banner auto-dismiss
    ERROR_BANNER_SECONDS: float = Field(default=8.0, description="Error banner lifetime")

    # Prompt overrides (settings page)
    PROMPTS_FILE: str | None = Field(
        default=None, description="JSON file holding locally overridden prompt templates"
    )

    # Sign-in notification side channel
    RESEND_API_KEY: str | None = Field(default=None, description="Resend API key")
    RESEND_FROM_EMAIL: str = Field(default="onboarding@resend.dev", description="Sender address")
    RESEND_FROM_NAME: str = Field(default="Observations to Insights", description="Sender name")
    NOTIFICATION_EMAIL: str | None = Field(
        default=None, description="Recipient of sign-in notifications"
    )

    # Auth fallback when no provider is configured
    DEV_USER_ID: str = Field(default="dev-user", description="User id for local-only mode")

    @property
    def store_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()

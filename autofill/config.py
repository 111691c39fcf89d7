"""Application configuration using pydantic-settings."""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: str = "INFO"

    # Anthropic completion service
    anthropic_api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"
    claude_model: str = "claude-sonnet-4-5"
    api_max_tokens: int = Field(default=8000, ge=1, le=64000)

    # Timeouts (ms)
    api_timeout_ms: int = Field(default=30000, ge=1000, le=120000)
    api_validation_timeout_ms: int = Field(default=10000, ge=1000, le=60000)

    # Retry policy
    api_retry_max: int = Field(default=3, ge=1, le=10)
    api_retry_base_delay_ms: int = Field(default=1000, ge=0, le=60000)
    api_retry_max_delay_ms: int = Field(default=10000, ge=0, le=120000)

    # Local rate limiting
    rate_limit_window_ms: int = Field(default=60000, ge=1000)
    rate_limit_max_requests: int = Field(default=5, ge=1, le=100)
    rate_limit_cleanup_interval_ms: int = Field(default=60000, ge=1000)
    rate_limit_max_age_ms: int = Field(default=300000, ge=1000)

    # Form operations
    field_fill_delay_ms: int = Field(default=50, ge=0, le=5000)
    job_description_max: int = Field(default=5000, ge=200)

    # Langfuse Observability
    langfuse_secret_key: str | None = None
    langfuse_public_key: str | None = None
    langfuse_base_url: str = "https://cloud.langfuse.com"

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.app_env == Environment.DEVELOPMENT

    @property
    def api_timeout_seconds(self) -> float:
        return self.api_timeout_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()

"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the heart-monitor process.

    All settings can be overridden via environment variables.
    Prefix is not used so the standard names work (e.g., BOT_TOKEN, CHANNEL_ID).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Discord
    bot_token: SecretStr | None = None
    channel_id: str | None = None
    game_bot_id: str | None = None
    discord_api_base: str = "https://discord.com/api/v10"

    # REST polling
    poll_interval_seconds: float = Field(default=5.0, gt=0.0)
    poll_message_limit: int = Field(default=20, ge=1, le=100)
    poll_batch_size: int = Field(default=5, ge=1, le=100)
    poll_error_log_interval_seconds: float = Field(default=30.0, ge=0.0)

    # HTTP
    http_timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_http_retries: int = Field(default=0, ge=0, le=10)
    max_backoff_seconds: float = Field(default=60.0, ge=1.0, le=300.0)

    # Gateway login retry
    login_retry_seconds: float = Field(default=5.0, gt=0.0)
    login_max_backoff_seconds: float = Field(default=60.0, gt=0.0)

    # Health endpoint
    health_host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def discord_configured(self) -> bool:
        """Check if the bot token and the watched channel/author are set."""
        return (
            self.bot_token is not None
            and self.channel_id is not None
            and self.game_bot_id is not None
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()

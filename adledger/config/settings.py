"""
Application settings.

Loads process configuration from environment variables using pydantic-settings.
Business rules (reward amounts, fees, thresholds) are admin settings and are
read through the configuration provider, not from here.
"""

import re

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Telegram Bot (notifications are disabled without a token)
    telegram_bot_token: str | None = None

    # Redis (Dramatiq broker and reset lock)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    log_level: str = "INFO"
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Scheduler health check port"
    )

    # Periodic reset
    reset_hour_utc: int = Field(
        default=0, ge=0, le=23, description="UTC hour at which a new period starts"
    )
    reset_check_interval_minutes: int = Field(
        default=5, gt=0, description="How often the scheduler checks for a due reset"
    )
    reset_batch_size: int = Field(
        default=1000, gt=0, description="Users processed per reset batch"
    )
    task_retention_days: int = Field(
        default=7, gt=0, description="Days of daily task rows kept after a reset"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("telegram_bot_token")
    @classmethod
    def validate_bot_token(cls, v: str | None) -> str | None:
        """Validate Telegram bot token format."""
        if v is None or v == "":
            return None
        pattern = r"^\d+:[A-Za-z0-9_-]{35}$"
        if not re.match(pattern, v):
            raise ValueError(
                "Invalid Telegram bot token format. "
                "Expected format: 123456789:ABCdefGHIjklMNOpqrsTUVwxyz"
            )
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "(or sqlite+aiosqlite:// for local runs)"
            )
        if v.startswith("postgresql://"):
            logger.warning(
                "DATABASE_URL uses the sync driver prefix, switching to asyncpg"
            )
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v


# Global settings instance
settings = Settings()

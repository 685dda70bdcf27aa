"""
Application configuration using Pydantic Settings.
Loads environment variables from .env file.
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_env: str = Field(default="development", alias="APP_ENV")
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept only standard logging level names."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if value.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return value.upper()

    # -------------------------------------------------------------------------
    # PostgreSQL (event store + credential store)
    # -------------------------------------------------------------------------
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="hubsync", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="postgres", alias="POSTGRES_PASSWORD")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    @property
    def async_database_url(self) -> str:
        """Build async database URL for SQLAlchemy."""
        if self.database_url:
            # Ensure we use the async driver
            url = self.database_url
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+psycopg://", 1)
            elif url.startswith("sqlite:///"):
                url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
            return url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # -------------------------------------------------------------------------
    # HubSpot OAuth app
    # -------------------------------------------------------------------------
    hubspot_client_id: str | None = Field(
        default=None,
        alias="HUBSPOT_CLIENT_ID",
        description="HubSpot OAuth2 Client ID",
    )
    hubspot_client_secret: str | None = Field(
        default=None,
        alias="HUBSPOT_CLIENT_SECRET",
        description="HubSpot OAuth2 Client Secret",
    )
    hubspot_api_base_url: str = Field(
        default="https://api.hubapi.com",
        alias="HUBSPOT_API_BASE_URL",
    )
    hubspot_timeout_seconds: float = Field(default=30.0, alias="HUBSPOT_TIMEOUT_SECONDS")

    # -------------------------------------------------------------------------
    # Sync engine tuning
    # The rollover threshold tracks HubSpot's 10k search depth limit.
    # -------------------------------------------------------------------------
    sync_domain_api_key: str | None = Field(
        default=None,
        alias="SYNC_DOMAIN_API_KEY",
        description="Restrict the sync to one domain; first domain when unset",
    )
    sync_page_size: int = Field(default=100, alias="SYNC_PAGE_SIZE", ge=1, le=100)
    sync_rollover_threshold: int = Field(default=9900, alias="SYNC_ROLLOVER_THRESHOLD", ge=1)
    sync_flush_threshold: int = Field(default=2000, alias="SYNC_FLUSH_THRESHOLD", ge=1)
    sync_queue_size: int = Field(default=10000, alias="SYNC_QUEUE_SIZE", ge=1)
    sync_max_retries: int = Field(default=4, alias="SYNC_MAX_RETRIES", ge=0)
    sync_retry_base_delay_seconds: float = Field(
        default=5.0, alias="SYNC_RETRY_BASE_DELAY_SECONDS", ge=0
    )
    sync_token_refresh_retries: int = Field(default=2, alias="SYNC_TOKEN_REFRESH_RETRIES", ge=0)
    sync_company_time_skew_seconds: float = Field(
        default=2.0, alias="SYNC_COMPANY_TIME_SKEW_SECONDS", ge=0
    )

    # -------------------------------------------------------------------------
    # Scheduling (one run per day)
    # -------------------------------------------------------------------------
    sync_schedule_enabled: bool = Field(default=True, alias="SYNC_SCHEDULE_ENABLED")
    sync_schedule_hour: int = Field(default=0, alias="SYNC_SCHEDULE_HOUR", ge=0, le=23)
    sync_schedule_minute: int = Field(default=0, alias="SYNC_SCHEDULE_MINUTE", ge=0, le=59)

    def get_sync_tuning(self) -> "SyncTuning":
        """Build the engine tuning object from settings."""
        return SyncTuning(
            page_size=self.sync_page_size,
            rollover_threshold=self.sync_rollover_threshold,
            flush_threshold=self.sync_flush_threshold,
            queue_size=self.sync_queue_size,
            max_retries=self.sync_max_retries,
            retry_base_delay=self.sync_retry_base_delay_seconds,
            token_refresh_retries=self.sync_token_refresh_retries,
            company_time_skew=self.sync_company_time_skew_seconds,
        )


@dataclass(frozen=True)
class SyncTuning:
    """Knobs of the incremental sync engine."""
    page_size: int = 100
    rollover_threshold: int = 9900
    flush_threshold: int = 2000
    queue_size: int = 10000
    max_retries: int = 4
    retry_base_delay: float = 5.0
    token_refresh_retries: int = 2
    company_time_skew: float = 2.0


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Note: Settings are cached! If you change .env, restart the process.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Call this if you need to reload settings."""
    get_settings.cache_clear()

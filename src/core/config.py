"""Application configuration using Pydantic Settings."""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Relay Notifications")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/relay",
        description="PostgreSQL connection URL with asyncpg driver",
    )

    # For testing with SQLite
    test_database_url: str = Field(
        default="sqlite+aiosqlite:///./test.db",
        description="Test database URL",
    )

    # Notification engine
    notification_default_channels: int = Field(
        default=1,
        description="Channel bit value used when a user has no stored preference (1 = in-app)",
    )
    notification_default_expiration_days: int = Field(default=30, ge=1)
    notification_max_batch_size: int = Field(default=100, ge=1)
    notification_enable_batch_processing: bool = Field(default=True)
    notification_batch_concurrency: int = Field(
        default=1,
        ge=1,
        description="Number of batch or fan-out items sent concurrently",
    )
    notification_max_retry_attempts: int = Field(default=3, ge=1)
    notification_cleanup_after_days: int = Field(default=90, ge=1)
    notification_enable_auto_cleanup: bool = Field(default=True)
    notification_provider_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound on a single provider send before it is recorded as failed",
    )
    notification_max_provider_response_length: int = Field(default=2000, ge=1)

    # Providers
    in_app_provider_enabled: bool = Field(default=True)
    email_provider_enabled: bool = Field(default=True)
    push_provider_enabled: bool = Field(default=True)
    webhook_provider_enabled: bool = Field(default=True)
    webhook_default_url: str = Field(
        default="",
        description="Fallback webhook URL when neither the notification nor the preference has one",
    )
    teams_webhook_url: str = Field(
        default="",
        description="Incoming webhook URL for Microsoft Teams (provider disabled when empty)",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses the asyncpg driver scheme.

        Render and other providers supply a standard ``postgresql://`` URL.
        SQLAlchemy's async engine requires ``postgresql+asyncpg://``.
        """
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@dataclass(frozen=True)
class NotificationOptions:
    """Read-only engine configuration, built once at startup."""

    default_channels: int = 1
    default_expiration_days: int = 30
    max_batch_size: int = 100
    enable_batch_processing: bool = True
    batch_concurrency: int = 1
    max_retry_attempts: int = 3
    cleanup_after_days: int = 90
    enable_auto_cleanup: bool = True
    provider_timeout_seconds: float = 30.0
    max_provider_response_length: int = 2000

    @classmethod
    def from_settings(cls, source: Settings) -> "NotificationOptions":
        return cls(
            default_channels=source.notification_default_channels,
            default_expiration_days=source.notification_default_expiration_days,
            max_batch_size=source.notification_max_batch_size,
            enable_batch_processing=source.notification_enable_batch_processing,
            batch_concurrency=source.notification_batch_concurrency,
            max_retry_attempts=source.notification_max_retry_attempts,
            cleanup_after_days=source.notification_cleanup_after_days,
            enable_auto_cleanup=source.notification_enable_auto_cleanup,
            provider_timeout_seconds=source.notification_provider_timeout_seconds,
            max_provider_response_length=source.notification_max_provider_response_length,
        )

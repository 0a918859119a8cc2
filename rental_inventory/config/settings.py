"""Configuration settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_lock_ttl_seconds: int = 10
    lock_wait_timeout_seconds: float = 5.0

    # Store operations
    store_timeout_seconds: float = 5.0

    # Availability
    conflict_limit: int = 50
    max_calendar_slots: int = 1000

    # Soft holds
    soft_hold_ttl_seconds: int = 900
    expiry_batch_size: int = 500

    # Background Jobs
    expiration_check_interval_seconds: int = 60

    # Logging
    log_level: str = "INFO"

    # Application
    app_name: str = "rental-inventory-engine"
    environment: str = "development"

    # HTTP API
    api_host: str = "127.0.0.1"
    api_port: int = 8000


def load_settings() -> Settings:
    """Load and validate settings from environment."""
    return Settings()  # type: ignore[call-arg]


@lru_cache
def get_settings() -> Settings:
    """Cached settings for the running process."""
    return load_settings()

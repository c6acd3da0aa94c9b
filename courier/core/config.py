"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_key_required: bool = Field(
        True,
        description="Whether admin endpoints require an X-API-Key header",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid admin API keys",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class QueueSettings(BaseSettings):
    """Delivery queue tuning."""

    batch_size: int = Field(
        20,
        description="Maximum number of due items processed per pass",
        ge=1,
    )
    default_max_retries: int = Field(
        3,
        description="Attempts allowed before an item is marked failed",
        ge=1,
    )
    base_delay_seconds: int = Field(
        300,
        description="Backoff base; retry n waits base * 2^(n-1) seconds",
        ge=1,
    )
    worker_enabled: bool = Field(
        False,
        description="Run the periodic queue worker inside the API process",
    )
    worker_interval_seconds: float = Field(
        60.0,
        description="Seconds between two processing passes of the worker",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="QUEUE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Admission limiter configuration."""

    enabled: bool = Field(
        True,
        description="Enable request admission limiting",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    fallback_default_window_seconds: int = Field(
        60,
        description="Window used when a configured window string cannot be parsed",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Connection settings for the durable row store and the counter store."""

    database_url: str = Field(
        "sqlite:///./courier.db",
        description="SQLAlchemy URL of the queue database",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis URL of the shared rate limit counter store",
    )
    redis_socket_timeout_seconds: float = Field(
        0.5,
        description="Socket timeout for counter store calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class MailSettings(BaseSettings):
    """Mail transport configuration."""

    provider: str = Field(
        "resend",
        description="Mail transport provider name (e.g., resend)",
    )
    api_key: str | None = Field(
        None,
        description="API key of the mail provider",
    )
    from_email: str = Field(
        "no-reply@example.com",
        description="Sender address used for every outbound message",
    )

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_000_000,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    mail: MailSettings = Field(default_factory=MailSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

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


class NotionSettings(BaseSettings):
    """Notion API connection settings."""

    token: str | None = Field(
        None,
        description="Integration token sent as a Bearer credential",
    )
    base_url: str = Field(
        "https://api.notion.com/v1",
        description="Notion REST API root",
    )
    api_version: str = Field(
        "2022-06-28",
        description="Value of the Notion-Version header",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Per-request HTTP timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTION_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Outbound rate limiting against Notion.

    The budget applies to every limiter key independently and is shared by
    all processes using the same Redis instance and key prefix.
    """

    backend: str = Field(
        "redis",
        description="Counting store backend: redis (shared) or memory (single process)",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL for the shared store",
    )
    key_prefix: str = Field(
        "notion_bridge:rl",
        description="Namespace prepended to every limiter key",
    )
    points: int = Field(
        3,
        description="Calls allowed per key within one window",
        ge=1,
    )
    duration_seconds: float = Field(
        1.0,
        description="Sliding window length in seconds",
        gt=0,
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Redis socket timeout; a timeout refuses the call",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class RetrySettings(BaseSettings):
    """Retry and backoff policy for transient Notion failures."""

    max_retries: int = Field(
        3,
        description="Retries after the first attempt for retryable failures",
        ge=0,
    )
    base_delay_seconds: float = Field(
        1.0,
        description="Wait before the first retry; doubles on every retry",
        gt=0,
    )
    max_delay_seconds: float | None = Field(
        30.0,
        description="Upper bound for a single backoff wait",
    )
    jitter: bool = Field(
        True,
        description="Randomize each wait within [delay/2, delay]",
    )

    model_config = SettingsConfigDict(
        env_prefix="RETRY_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable inbound rate limiting per API key",
    )
    rate_limit_requests: int = Field(
        60,
        description="Maximum number of requests allowed per window (per API key)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    notion: NotionSettings = Field(default_factory=NotionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

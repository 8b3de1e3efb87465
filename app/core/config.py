"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
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
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_WEATHER_API_BASE_URL = (
    "https://weather.visualcrossing.com/VisualCrossingWebServices/rest/services/timeline"
)


def _build_weather_settings() -> "WeatherSettings":
    """Build upstream provider settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return WeatherSettings()  # type: ignore[call-arg]


def _build_cache_settings() -> "CacheSettings":
    return CacheSettings()


def _build_app_settings() -> "AppSettings":
    return AppSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class WeatherSettings(BaseSettings):
    """Upstream weather provider configuration."""

    provider: str = Field(
        "visualcrossing",
        description="Weather provider name (only 'visualcrossing' is supported)",
    )
    api_base_url: str = Field(
        DEFAULT_WEATHER_API_BASE_URL,
        description="Base URL of the provider's timeline endpoint",
    )
    api_key: str = Field(
        ...,
        description="API key sent to the provider on every request",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Hard ceiling for a single upstream request",
        gt=0,
    )
    unit_group: str = Field(
        "metric",
        description="Unit system requested from the provider (metric, us, uk, base)",
    )

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Cache backend configuration.

    The cache is pure acceleration: when the backend is unreachable the API
    keeps serving upstream data, only slower.
    """

    backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Cache/rate-limit store backend",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL",
        validation_alias=AliasChoices("REDIS_URL", "CACHE_REDIS_URL"),
    )
    ttl_seconds: int = Field(
        12 * 60 * 60,
        description="Time-to-live of cached weather entries",
        ge=1,
    )
    socket_timeout_seconds: float = Field(
        0.25,
        description="Redis socket and connect timeout; keep short so the cache never dominates latency",
        gt=0,
    )
    max_entries: int | None = Field(
        1024,
        description="Maximum entries for the in-memory backend (None for unlimited)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
        populate_by_name=True,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per caller identity",
    )
    rate_limit_requests: int = Field(
        100,
        description="Maximum number of requests allowed per window (per identity)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60 * 60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_namespace: str = Field(
        "weather",
        description="Namespace segment of rate limit keys (ratelimit:<namespace>:<identity>)",
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
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
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
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    weather: WeatherSettings = Field(default_factory=_build_weather_settings)
    cache: CacheSettings = Field(default_factory=_build_cache_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

"""Settings for the image generation API, the shared store and the admin CLI.

APP_ENV picks the dotenv file (``.env.development``, ``.env.testing``,
``.env.staging`` or ``.env.production``) read from the project root. Variables
already present in the process environment win over the file.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")
PROJECT_ROOT = Path(__file__).resolve().parents[2]
KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")


def _dotenv_path(env: str) -> Path | None:
    name = env if env in KNOWN_ENVIRONMENTS else "development"
    path = PROJECT_ROOT / f".env.{name}"
    return path if path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
_env_file = _dotenv_path(APP_ENV)
if _env_file is not None:
    load_dotenv(_env_file, override=False)


def _build_llm_settings() -> "LLMSettings":
    # BaseSettings reads its fields from the environment; type checkers disagree.
    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_store_settings() -> "StoreSettings":
    return StoreSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """OpenAI configuration for prompt optimisation and image generation."""

    provider: str = Field(
        "openai",
        description="Image/LLM provider name (only openai is supported)",
    )
    api_key: str | None = Field(
        None,
        description="API key for the provider",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint",
    )
    timeout_seconds: float = Field(
        60.0,
        description="Request timeout in seconds",
    )
    prompt_model: str = Field(
        "gpt-4.1-nano",
        description="Chat model used to optimise prompts and suggest new ones",
    )
    image_model: str = Field(
        "dall-e-3",
        description="Image model used for generation",
    )
    image_size: str = Field(
        "1024x1024",
        description="Generated image size",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration (throttling and usage metering)."""

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the sliding-window request throttle",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests admitted per rolling window (per identifier)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rolling window size in seconds",
        ge=1,
    )
    rate_limit_prefix: str = Field(
        "imagegen:ratelimit",
        description="Key namespace for sliding-window records",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    usage_limit_enabled: bool = Field(
        True,
        description="Enable the daily image generation budget",
    )
    usage_daily_limit: int = Field(
        2,
        description="Completed image generations allowed per identifier before reset",
        ge=1,
    )
    usage_ttl_seconds: int = Field(
        15 * 60 * 60,
        description="Lifetime of a usage counter, set on its first increment",
        ge=1,
    )
    usage_limit_prefix: str = Field(
        "imagegen:usagelimit",
        description="Key namespace for usage counters",
    )
    usage_reset_soon_seconds: int = Field(
        6 * 60 * 60,
        description="Below this remaining TTL the quota is reported as resetting shortly",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Shared key-value store configuration."""

    backend: str = Field(
        "redis",
        description="Store backend: redis (shared) or memory (single process, dev/tests)",
        pattern="^(redis|memory)$",
    )
    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (use rediss:// for TLS)",
    )
    socket_timeout_seconds: float = Field(
        5.0,
        description="Socket timeout for store calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate file after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Request correlation header")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Root settings object, one section per environment prefix."""

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    store: StoreSettings = Field(default_factory=_build_store_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Invalid values fail at import time.
settings = Settings()

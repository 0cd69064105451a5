"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_DENYLIST_PATTERNS = (
    r"ignore (all )?(previous|prior) instructions",
    r"reveal (your|the) system prompt",
    r"jailbreak",
)


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Static type checkers treat fields without defaults as required
    constructor arguments, which is not how BaseSettings is used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """Upstream completion provider configuration.

    Validation of provider-specific requirements (e.g. a missing credential)
    happens in the client factory, at first use, not at startup.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (currently only openai)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Model identifier sent with every completion request",
    )
    api_key: str | None = Field(
        None,
        description="Upstream API credential (LLM_API_KEY or OPENAI_API_KEY)",
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (e.g., an OpenAI-compatible gateway)",
    )
    timeout_seconds: float = Field(
        20.0,
        description="Upper bound on a single upstream call in seconds",
        gt=0,
    )
    temperature: float = Field(
        0.5,
        description="Sampling temperature",
        ge=0.0,
        le=2.0,
    )
    max_reply_tokens: int = Field(
        650,
        description="Maximum number of tokens the model may generate per reply",
        ge=1,
    )
    presence_penalty: float = Field(0.0, ge=-2.0, le=2.0)
    frequency_penalty: float = Field(0.1, ge=-2.0, le=2.0)

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
        populate_by_name=True,
    )


class AppSettings(BaseSettings):
    """Request admission configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    max_input_chars: int = Field(
        700,
        description="Maximum chat message length in characters (not tokens)",
        ge=1,
    )
    max_body_bytes: int = Field(
        16384,
        description=(
            "Maximum raw request body size in bytes; larger bodies are rejected "
            "with 413 before being parsed"
        ),
        ge=1,
    )
    denylist_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DENYLIST_PATTERNS),
        description=(
            "Case-insensitive regular expressions (a JSON array in the "
            "environment); a message matching any of them is rejected"
        ),
    )
    prompt_variant: str = Field(
        "practical",
        description="Name of the system prompt template to send upstream",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-caller rate limiting",
    )
    rate_limit_requests: int = Field(
        20,
        description="Maximum number of requests allowed per window (per caller)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_max_keys: int = Field(
        10000,
        description="Maximum number of caller records kept in memory (LRU)",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )
    trust_forwarded_for: bool = Field(
        True,
        description="Derive the caller key from the first X-Forwarded-For entry",
    )
    host: str = Field("127.0.0.1", description="Bind address for the chat-proxy command")
    port: int = Field(8000, description="Bind port for the chat-proxy command", ge=1, le=65535)

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()

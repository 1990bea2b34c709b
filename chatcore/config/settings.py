"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """LLM provider and orchestration configuration."""

    model: str = Field(
        default="gpt-4",
        description="Model id sent to the provider. Must have an entry in the "
                    "context budget table (or in model_char_budgets).",
    )
    temperature: float = Field(default=0.0, description="Sampling temperature")
    api_key: str = Field(default="", description="API key for the model's provider")
    max_tokens: int | None = Field(
        default=None, description="Maximum tokens in the response (provider default if unset)"
    )
    request_timeout: float | None = Field(
        default=None,
        description="Seconds before an in-flight provider call is aborted. "
                    "A timeout counts as one failed attempt.",
    )

    # Retry behaviour
    max_retries: int = Field(
        default=5, ge=1, description="Attempts per provider call before giving up"
    )
    retry_backoff_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Base delay for exponential backoff between attempts. "
                    "0 retries immediately.",
    )

    # Context window
    context_fraction: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Fraction of the model's approximate character budget to fill",
    )
    model_char_budgets: dict[str, int] = Field(
        default_factory=dict,
        description="Extra or overriding per-model character budgets. "
                    "Set via LLM_MODEL_CHAR_BUDGETS='{\"my-model\": 16000}'",
    )

    model_config = SettingsConfigDict(env_prefix="LLM_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    llm: LLMSettings = Field(default_factory=LLMSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings

"""
Toxicity-Service - Application Configuration

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix TXS_ for Toxicity-Service

Provider credentials are read here, at the service edge, and handed to the
remote adapters as plain strings. A provider without a key is not built.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with TXS_ prefix.
    Example: TXS_GEMINI_API_KEY=..., TXS_CACHE_MAX_ENTRIES=2000
    """

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8090

    # Application metadata
    service_name: str = "toxicity-service"
    version: str = "0.1.0"
    environment: str = "development"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    # Tracing configuration
    tracing_enabled: bool = True
    tracing_console_export: bool = False

    # Admin switch: False forces lexicon-only moderation
    remote_moderation_enabled: bool = True

    # Primary remote classifier (Gemini)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    primary_rate_window_seconds: float = Field(default=60.0, gt=0)
    primary_rate_max_calls: int = Field(default=15, ge=0)
    primary_short_cooldown_seconds: float = Field(default=60.0, ge=0)
    primary_long_cooldown_seconds: float = Field(default=3600.0, ge=0)

    # Secondary remote classifier (Groq, OpenAI-compatible)
    groq_api_key: str | None = None
    groq_model: str = "llama-3.1-8b-instant"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    secondary_rate_window_seconds: float = Field(default=60.0, gt=0)
    secondary_rate_max_calls: int = Field(default=30, ge=0)
    secondary_short_cooldown_seconds: float = Field(default=60.0, ge=0)
    secondary_long_cooldown_seconds: float = Field(default=3600.0, ge=0)

    # Response cache
    cache_max_entries: int = Field(default=1000, ge=2)
    cache_maintenance_interval_seconds: float = Field(default=300.0, gt=0)

    # Per remote call bound (seconds)
    call_timeout_seconds: float = Field(default=10.0, gt=0)

    # Optional override for the lexicon YAML file
    lexicon_path: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="TXS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()

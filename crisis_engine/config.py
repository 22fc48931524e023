"""
Configuration Management

Uses Pydantic BaseSettings to load configuration from environment variables.
All settings can be overridden via .env file or environment variables.

Environment Variables:
    REDIS_URL: Redis connection string
    REDIS_KEY_PREFIX: Namespace prepended to every persisted key
    REDIS_CONNECT_TIMEOUT, REDIS_SOCKET_TIMEOUT, REDIS_MAX_RETRIES: Connection tuning
    STORAGE_BACKEND: "redis" or "memory" (default: redis)
    CRISIS_LEXICON_PATH: Optional JSON file merged over the packaged lexicon
    APP_ENV: Environment name (development/staging/production)
    DEBUG: Enable debug mode (default: False)
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage Configuration
    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL.

    Format: redis://host:port/db
    Example: redis://localhost:6379/0

    Backs the safety plan record and the crisis/action logs.
    """

    redis_key_prefix: str = "crisis:v1:"
    """Namespace for persisted keys (allows multiple apps/versions on same Redis)."""

    redis_connect_timeout: float = 5.0
    """Seconds to wait when opening a Redis connection."""

    redis_socket_timeout: float = 5.0
    """Seconds to wait for a Redis command to complete."""

    redis_max_retries: int = 3
    """Retries (exponential backoff) for a failed Redis command."""

    storage_backend: Literal["redis", "memory"] = "redis"
    """Key-value backend.

    Options:
    - redis: Redis, falling back to memory if the server is unreachable
    - memory: process-local dictionary (tests, local demos)
    """

    # Crisis Lexicon
    crisis_lexicon_path: Optional[str] = None
    """Optional path to a JSON lexicon override.

    Top-level sections in the file replace the packaged defaults. An invalid
    file is logged and ignored; the packaged lexicon stays in effect.
    """

    # Log Retention
    crisis_event_log_limit: int = 100
    """Maximum number of crisis events kept (oldest dropped first)."""

    emergency_action_log_limit: int = 50
    """Maximum number of emergency actions kept (oldest dropped first)."""

    # Statistics
    statistics_window_days: int = 30
    """Window for the "recent" counts in crisis statistics."""

    response_window_hours: int = 24
    """An emergency action within this many hours of a high/critical event counts as a response."""

    # Application Environment
    app_env: Literal["development", "staging", "production"] = "development"
    """Current application environment.

    Options:
    - development: Local development, verbose logging, debug enabled
    - staging: Pre-production testing environment
    - production: Live production environment, minimal logging
    """

    debug: bool = False
    """Enable debug mode.

    When True:
    - Detailed error messages in responses
    - DEBUG level logging

    Should be False in production.
    """

    # Application Configuration
    app_name: str = "crisis-engine"
    """Application name."""

    host: str = "0.0.0.0"
    """Host to bind the application server."""

    port: int = 8000
    """Port to bind the application server."""

    # CORS Configuration
    cors_origins: str = "http://localhost:3000"
    """Comma-separated list of allowed CORS origins."""

    # Pydantic configuration
    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env file if it exists
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow REDIS_URL or redis_url
        extra="ignore",  # Ignore extra environment variables
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def cors_origins_list(self) -> list[str]:
        """Split cors_origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache so settings are loaded once and reused across the
    application.

    Example:
        >>> from crisis_engine.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.redis_url)
        redis://localhost:6379/0
    """
    return Settings()


# Module-level settings instance for easy imports
settings = get_settings()

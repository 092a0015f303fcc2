from functools import lru_cache
from typing import Optional

from loguru import logger
from pydantic_settings import BaseSettings
from pydantic import field_validator, Field


class Settings(BaseSettings):
    """Application settings."""
    # General settings
    debug: bool = False
    app_name: str = "DevConnect"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="APP_ENV")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="", alias="LOG_FILE")  # Empty disables the file sink

    # Database settings
    db_url: str = Field(default="sqlite+aiosqlite:///./devconnect.db", alias="DATABASE_URL")
    db_retry_attempts: int = Field(default=3, alias="DB_RETRY_ATTEMPTS")
    diagnostics_enabled: bool = Field(default=False, alias="DIAGNOSTICS")

    # Suggestions
    suggestion_default_limit: int = Field(default=10, alias="SUGGESTION_DEFAULT_LIMIT")
    suggestion_max_limit: int = Field(default=50, alias="SUGGESTION_MAX_LIMIT")

    # Health server
    health_host: str = Field(default="0.0.0.0", alias="HEALTH_HOST")
    health_port: int = Field(default=8080, alias="PORT")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: Optional[str]) -> str:
        """Accept log levels in any case."""
        if not v:
            return "INFO"
        return str(v).strip().upper()

    @field_validator("suggestion_max_limit")
    @classmethod
    def _check_max_limit(cls, v: int) -> int:
        if v < 1:
            logger.warning(f"SUGGESTION_MAX_LIMIT must be positive, got {v}; using 1")
            return 1
        return v

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore any extra fields not defined above
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    # Clear cache if needed for testing: get_settings.cache_clear()
    return Settings()


def clamp_suggestion_limit(limit: Optional[int], settings: Optional[Settings] = None) -> int:
    """
    Clamp a caller-supplied suggestion limit into the allowed range.

    ``None`` falls back to the configured default. The connection engine
    does not clamp; callers facing the outside world do.
    """
    settings = settings or get_settings()
    if limit is None:
        limit = settings.suggestion_default_limit
    return max(1, min(int(limit), settings.suggestion_max_limit))

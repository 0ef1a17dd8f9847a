"""
Application settings using Pydantic.

Provides environment-based configuration loading with DEPLOYCHAIN_ prefix.
"""

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from deploychain.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DEPLOYCHAIN_",
        extra="ignore",
    )

    # Target environment used when --env is not given
    environment: str = "dry-run"

    # Explicit environments file (otherwise searched for)
    config_path: str | None = None

    # Logging
    log_level: str = "WARNING"
    log_json: bool = True

    # Execution
    max_concurrency: int = Field(1, ge=1)

    # HTTP client defaults, applied when an environment does not set them
    http_timeout: float = Field(300.0, gt=0)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()
    except ValidationError as exc:
        fields = ", ".join(
            "DEPLOYCHAIN_" + "_".join(str(part) for part in err["loc"]).upper()
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid settings: {fields}", {"errors": exc.error_count()}) from exc

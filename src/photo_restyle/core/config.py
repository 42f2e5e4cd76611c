"""Application configuration using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with
    the PHOTO_RESTYLE_ prefix. The provider key and listening port are
    also read from the conventional OPENAI_API_KEY and PORT variables.

    Example:
        export PHOTO_RESTYLE_LOG_LEVEL=DEBUG
        export PHOTO_RESTYLE_MAX_CONCURRENT_REQUESTS=5
    """

    model_config = SettingsConfigDict(
        env_prefix="PHOTO_RESTYLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["simple", "detailed", "json"] = "simple"

    # Image-edit provider
    openai_api_key: str | None = Field(
        default=None,
        repr=False,  # Hidden from logs
        validation_alias=AliasChoices("PHOTO_RESTYLE_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-image-1"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("PHOTO_RESTYLE_PORT", "PORT"))

    # Concurrency control
    max_concurrent_requests: int = Field(default=20, ge=1)
    # Used only for the wait estimate in capacity rejections
    minutes_per_request: float = Field(default=3.0, gt=0)

    # Timeouts (seconds). The outer request timeout must exceed the provider timeout
    # so the provider failure is reported before the request deadline fires.
    request_timeout_seconds: float = Field(default=300.0, gt=0)
    provider_timeout_seconds: float = Field(default=240.0, gt=0)

    # Retention sweeper
    sweep_interval_seconds: float = Field(default=30.0, gt=0)
    # Must stay above request_timeout_seconds or in-flight temp files could be swept
    temp_max_age_seconds: float = Field(default=360.0, gt=0)
    result_max_age_seconds: float = Field(default=3600.0, gt=0)

    # Paths - /tmp is the only location guaranteed writable in container deployments
    upload_dir: Path = Path("/tmp/photo-restyle/uploads")
    temp_dir: Path = Path("/tmp/photo-restyle/tmp")
    results_dir: Path = Path("/tmp/photo-restyle/results")

    # Uploads and normalization
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    image_size: int = Field(default=1024, gt=0)

    # Style catalog
    styles_file: Path | None = None
    allow_raw_prompts: bool = True

    # CORS - origins allowed to call this API (images are embedded cross-origin)
    frontend_origins: list[str] = Field(default=["*"])

    @field_validator("upload_dir", "temp_dir", "results_dir", mode="before")
    @classmethod
    def ensure_dir_exists(cls, v: Path | str) -> Path:
        """Create artifact directories if they don't exist."""
        path = Path(v)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @model_validator(mode="after")
    def check_timeout_ordering(self) -> Settings:
        """Reject timeout combinations that would race each other."""
        if self.request_timeout_seconds <= self.provider_timeout_seconds:
            raise ValueError(
                "request_timeout_seconds must be greater than provider_timeout_seconds"
            )
        if self.temp_max_age_seconds <= self.request_timeout_seconds:
            raise ValueError("temp_max_age_seconds must be greater than request_timeout_seconds")
        return self


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the current settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global settings
    settings = Settings()
    return settings

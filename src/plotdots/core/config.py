"""Centralized runtime settings using pydantic-settings.

All environment variable reads are consolidated here. Import `get_settings`
from this module rather than reading os.environ directly.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables.

    All env vars are prefixed with PLOTDOTS_ (case-insensitive).
    """

    model_config = SettingsConfigDict(
        env_prefix="PLOTDOTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_format: Literal["console", "json"] = "console"
    log_level: str = "INFO"

    # Categories are processed on a thread pool when greater than 1
    max_workers: int = Field(1, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings singleton."""
    return Settings()

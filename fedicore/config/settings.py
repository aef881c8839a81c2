"""Configuration management using pydantic-settings.

Provides validated configuration with support for:
- JSON config file (config.json)
- Type coercion and validation
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CONTENT_TYPES = [
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "video/mp4",
    "video/quicktime",
    "video/webm",
    "audio/mpeg",
    "audio/ogg",
    "audio/wav",
    "audio/x-wav",
    "audio/flac",
    "audio/mp4",
]


class MediaSettings(BaseModel):
    """Configuration for the media attachment pipeline."""

    storage_root: str = "storage"
    base_url: str = "http://localhost:8080/fileserver"
    thumbnail_max_size: int = Field(default=512, ge=16, le=4096)
    max_upload_bytes: int = Field(default=40 * 1024 * 1024, gt=0)
    allowed_content_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CONTENT_TYPES)
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("allowed_content_types", mode="before")
    @classmethod
    def normalize_content_types(cls, v: Any) -> Any:
        """Lowercase content types and drop any parameters (;charset=...)."""
        if isinstance(v, list):
            return [str(ct).split(";", 1)[0].strip().lower() for ct in v]
        return v


class InstanceSettings(BaseModel):
    """Identity of the local instance."""

    host: str = "localhost"

    @field_validator("host")
    @classmethod
    def normalize_host(cls, v: str) -> str:
        """Hostnames are case-insensitive; store them lowercased."""
        return v.strip().lower()


class AppSettings(BaseSettings):
    """Application settings with validation.

    Settings are loaded from a JSON config file (config.json).
    """

    database_url: str = ""
    instance: InstanceSettings = Field(default_factory=InstanceSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    @classmethod
    def from_json(cls, path: str | Path = "config.json") -> "AppSettings":
        """Load settings from a JSON config file.

        Args:
            path: Path to the JSON config file

        Returns:
            AppSettings instance with validated configuration
        """
        config_path = Path(path)
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls(**data)
        return cls()


@lru_cache
def get_settings(config_path: str = "config.json") -> AppSettings:
    """Get cached application settings.

    Args:
        config_path: Path to JSON config file (default: config.json)

    Returns:
        Cached AppSettings instance
    """
    return AppSettings.from_json(config_path)


def load_config(path: str | Path = "config.json") -> AppSettings:
    """Load configuration from file, bypassing the get_settings() cache."""
    get_settings.cache_clear()
    return AppSettings.from_json(path)

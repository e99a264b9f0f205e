"""Configuration management for capsulekit."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CAPSULEKIT_",
        extra="ignore",
    )

    # Catalog
    catalog_dir: Path = Field(default_factory=lambda: Path.cwd() / "capsules")
    include_builtin: bool = True

    # Resolution
    strict_props: bool = True
    max_workers: int = Field(default=8, ge=1)

    # REST service
    api_url: str = "http://localhost:3000/api/v1"
    api_key: Optional[str] = None
    api_timeout: float = 30.0


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()

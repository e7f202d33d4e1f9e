"""Configuration settings for deploy_imagegen.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the DEPLOY_IMG_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_IMG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Workspace
    tmp_dir: Path | None = Field(
        default=None,
        description="Root for build workspaces (system temp dir if not set)",
    )
    workspace_prefix: str = Field(
        default="weaver",
        min_length=1,
        description="Name prefix for build workspace directories",
    )
    manifest_filename: str = Field(
        default="Dockerfile",
        min_length=1,
        description="Build manifest filename discovered by the container toolchain",
    )

    # Toolchain
    container_cli: str = Field(
        default="docker",
        min_length=1,
        description="Container CLI used to build and push images",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    build_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Deadline for staging plus image build",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]

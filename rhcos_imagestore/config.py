"""Configuration settings for rhcos_imagestore.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: explicit arguments > env vars > defaults.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    """Return the default image data directory."""
    return Path.home() / ".cache" / "rhcos-imagestore" / "images"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the IMAGE_STORE_
    prefix. The catalog override keeps its historical un-prefixed name,
    RHCOS_VERSIONS.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Paths
    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Directory holding full and minimal images",
    )

    # Catalog
    rhcos_versions: str | None = Field(
        default=None,
        validation_alias="RHCOS_VERSIONS",
        description="JSON catalog override (uses the built-in table if not set)",
    )

    # Derivation
    coreos_installer: str = Field(
        default="coreos-installer",
        description="Executable used to derive minimal ISOs",
    )

    # Concurrency
    max_concurrent_versions: int | None = Field(
        default=None,
        ge=1,
        description="Cap on versions populated in parallel (one per version if not set)",
    )

    # Timeouts (in seconds)
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for image downloads",
    )
    derive_timeout: int = Field(
        default=1800,
        ge=60,
        description="Timeout for minimal image derivation",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]

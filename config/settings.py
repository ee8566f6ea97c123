"""
Configuration settings for Region Weather Map.

This module provides type-safe configuration management using Pydantic.
Settings are loaded from environment variables and .env file.

Usage:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.weather_dataset_uri)
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get the project root directory (parent of config/)
PROJECT_ROOT = Path(__file__).parent.parent

# Source CSV columns that can be interpolated onto the grid
SCALAR_COLUMNS = ("t2m", "d2m", "sp", "tcc", "u10", "v10")


class Settings(BaseSettings):
    """
    Application settings with validation.

    Settings are loaded from environment variables, with fallback to .env file.
    All paths are relative to the project root unless absolute.
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Dataset Locations
    # ==========================================================================
    weather_dataset_uri: str = Field(
        default="",
        description="Path or http(s) URL of the weather samples CSV"
    )

    region_dataset_uri: str = Field(
        default="",
        description="Path or http(s) URL of the region reference CSV"
    )

    region_geometry_column: int = Field(
        default=5,
        ge=0,
        description="Zero-based column of the region row holding the WKT geometry"
    )

    request_timeout: int = Field(
        default=30,
        ge=5,
        le=300,
        description="Dataset download timeout in seconds"
    )

    # ==========================================================================
    # Download Cache
    # ==========================================================================
    cache_dir: Path = Field(
        default=PROJECT_ROOT / "data" / "cache",
        description="Directory for cached dataset downloads"
    )

    use_cache: bool = Field(
        default=True,
        description="Cache downloaded datasets on disk"
    )

    cache_max_age_hours: int = Field(
        default=24,
        ge=0,
        description="Age after which a cached download is fetched again"
    )

    # ==========================================================================
    # Grid Interpolation
    # ==========================================================================
    grid_resolution: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Grid subdivisions per axis for the interpolated surface"
    )

    scalar_field: str = Field(
        default="sp",
        description="Source column interpolated onto the grid (sp = surface pressure)"
    )

    interpolation_workers: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Worker threads used to compute grid rows"
    )

    keep_invalid_nodes: bool = Field(
        default=True,
        description="Keep grid nodes whose value could not be computed (value NaN)"
    )

    # ==========================================================================
    # Surface Pressure Bands (Pa)
    # ==========================================================================
    low_pressure_threshold: float = Field(
        default=98000.0,
        description="Upper bound of the low pressure band"
    )

    high_pressure_threshold: float = Field(
        default=100000.0,
        description="Upper bound of the mid pressure band"
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(
        default="INFO",
        description="Root log level used by the CLI"
    )

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        v_upper = v.upper()
        if not isinstance(logging.getLevelName(v_upper), int):
            raise ValueError(f"Unknown log level: {v}")
        return v_upper

    @field_validator("scalar_field")
    @classmethod
    def validate_scalar_field(cls, v: str) -> str:
        """Validate interpolated column name."""
        v_lower = v.lower()
        if v_lower not in SCALAR_COLUMNS:
            raise ValueError(f"Scalar field must be one of: {SCALAR_COLUMNS}")
        return v_lower

    @field_validator("cache_dir", mode="before")
    @classmethod
    def resolve_path(cls, v) -> Path:
        """Convert string paths to Path objects and resolve relative paths."""
        if isinstance(v, str):
            v = Path(v)
        if not v.is_absolute():
            v = PROJECT_ROOT / v
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """Ensure the pressure bands are ordered."""
        if self.low_pressure_threshold >= self.high_pressure_threshold:
            raise ValueError("low_pressure_threshold must be below high_pressure_threshold")
        return self

    # ==========================================================================
    # Properties
    # ==========================================================================
    @property
    def has_datasets(self) -> bool:
        """Check if both dataset locations are configured."""
        return bool(self.weather_dataset_uri and self.region_dataset_uri)

    # ==========================================================================
    # Methods
    # ==========================================================================
    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance (cached for performance)

    Note:
        Uses lru_cache to avoid re-reading .env file on every call.
        Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Force reload settings from environment.

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()

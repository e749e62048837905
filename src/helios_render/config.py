"""
Helios Render Configuration
===========================

This module handles configuration loading for the solar renderer.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    HELIOS_API_URL      -> api.url
    HELIOS_API_TIMEOUT  -> api.timeout_seconds
    HELIOS_MODEL_PATH   -> model.path
    HELIOS_QUALITY      -> quality.preset
    HELIOS_LOG_LEVEL    -> logging.level

Design Rules:
    - There is NO module-level settings instance. Callers load a Settings
      value once and pass it into the collaborators they construct
      (see FrameStore.from_settings), so two entities built concurrently
      never race on shared configuration.

Example:
    from helios_render.config import load_config, setup_logging

    settings = load_config()
    setup_logging(settings)

    print(settings.api.url)
    print(settings.quality.settings().resolution)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from helios_render.geometry.quality import QUALITY_PRESETS, QualitySettings


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ApiConfig(BaseModel):
    """Helioviewer API connection configuration."""

    url: str = Field(
        default="https://api.helioviewer.org/?action=",
        description="Base API url, actions are appended to it",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for each HTTP request",
    )


class ModelConfig(BaseModel):
    """Mesh asset configuration."""

    path: str = Field(
        default="./resources/models/sun_model.glb",
        description="Path to the hemisphere mesh used for disk imagery",
    )


class QualityConfig(BaseModel):
    """Image quality configuration."""

    preset: str = Field(
        default="Default",
        description="Quality preset: Low, Default, High or Maximum",
    )

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        """Ensure the preset name is known."""
        if v not in QUALITY_PRESETS:
            raise ValueError(
                f"Unknown quality preset '{v}', "
                f"expected one of {sorted(QUALITY_PRESETS)}"
            )
        return v

    def settings(self) -> QualitySettings:
        """Resolve the preset name to its quality settings."""
        return QUALITY_PRESETS[self.preset]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for helios_render.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    if env_url := os.environ.get("HELIOS_API_URL"):
        config_data.setdefault("api", {})["url"] = env_url
    if env_timeout := os.environ.get("HELIOS_API_TIMEOUT"):
        config_data.setdefault("api", {})["timeout_seconds"] = float(env_timeout)

    if env_model := os.environ.get("HELIOS_MODEL_PATH"):
        config_data.setdefault("model", {})["path"] = env_model

    if env_quality := os.environ.get("HELIOS_QUALITY"):
        config_data.setdefault("quality", {})["preset"] = env_quality

    if env_log := os.environ.get("HELIOS_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

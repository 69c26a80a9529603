"""
Ornithology Pi Configuration
============================

This module handles configuration loading for the Bluetooth service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    ORNITHOLOGY_ADAPTER        -> bluetooth.adapter
    ORNITHOLOGY_CHANNEL        -> service.channel
    ORNITHOLOGY_SIGHTINGS_DIR  -> thumbnail.sightings_dir
    ORNITHOLOGY_IDLE_TIMEOUT   -> protocol.idle_timeout_seconds ("none" or "0" = never)
    ORNITHOLOGY_LOG_LEVEL      -> logging.level

Example:
    from ornithology_pi.config import settings

    print(settings.service.name)
    print(settings.thumbnail.sightings_dir)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from ornithology_pi.bluetooth.profile import CHANNEL, SERVICE_NAME, SERVICE_UUID


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identity as seen by the companion app."""

    name: str = Field(default=SERVICE_NAME, description="Service and local name")
    uuid: str = Field(default=SERVICE_UUID, description="RFCOMM service UUID")
    channel: int = Field(
        default=CHANNEL,
        ge=1,
        le=30,
        description="RFCOMM channel",
    )


class BluetoothConfig(BaseModel):
    """Adapter configuration."""

    adapter: Optional[str] = Field(
        default=None,
        description="Adapter name (e.g. hci0). None = first adapter found",
    )
    discoverable_timeout: int = Field(
        default=0,
        ge=0,
        description="Discoverable timeout in seconds (0 = forever)",
    )
    teardown_grace_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay after releasing BlueZ objects on shutdown",
    )


class ProtocolConfig(BaseModel):
    """Per-connection protocol settings."""

    max_frame_size: int = Field(
        default=8192,
        ge=64,
        description="Receive MTU: largest frame read at once",
    )
    idle_timeout_seconds: Optional[float] = Field(
        default=300.0,
        gt=0,
        description="Close a connection after this long without a request (None = never)",
    )


class ThumbnailConfig(BaseModel):
    """Photo thumbnail settings."""

    sightings_dir: str = Field(
        default="sightings",
        description="Directory holding <species>_<uuid>.jpg photos",
    )
    width: int = Field(default=24, ge=1, description="Thumbnail width in pixels")
    height: int = Field(default=16, ge=1, description="Thumbnail height in pixels")
    jpeg_quality: int = Field(default=60, ge=1, le=100, description="JPEG quality")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for Ornithology Pi.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    bluetooth: BluetoothConfig = Field(default_factory=BluetoothConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    thumbnail: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
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
            Path("/etc/ornithology-pi/config.yaml"),
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

    if env_adapter := os.environ.get("ORNITHOLOGY_ADAPTER"):
        config_data.setdefault("bluetooth", {})["adapter"] = env_adapter
    if env_channel := os.environ.get("ORNITHOLOGY_CHANNEL"):
        config_data.setdefault("service", {})["channel"] = int(env_channel)

    if env_dir := os.environ.get("ORNITHOLOGY_SIGHTINGS_DIR"):
        config_data.setdefault("thumbnail", {})["sightings_dir"] = env_dir

    if env_idle := os.environ.get("ORNITHOLOGY_IDLE_TIMEOUT"):
        # "none" or "0" disables the timeout
        idle = None if env_idle.strip().lower() == "none" else float(env_idle) or None
        config_data.setdefault("protocol", {})["idle_timeout_seconds"] = idle

    if env_log := os.environ.get("ORNITHOLOGY_LOG_LEVEL"):
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


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()

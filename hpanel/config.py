"""Configuration management for hypr-panel."""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, validator

from .logging_setup import get_logger

logger = get_logger("config")


class BatteryConfig(BaseModel):
    """Battery listener configuration."""

    device: str = "BAT0"
    sysfs_root: str = "/sys/class/power_supply"
    debounce_s: float = 1.0
    debounce_tick_s: float = 0.1
    fallback_interval_s: float = 30.0
    error_backoff_s: float = 1.0

    @validator("debounce_s", "debounce_tick_s", "fallback_interval_s", "error_backoff_s")
    def validate_intervals(cls, v):
        """Reject zero or negative intervals."""
        if v <= 0:
            raise ValueError("battery intervals must be positive")
        return v

    @property
    def device_path(self) -> Path:
        """Directory holding the capacity and status files."""
        return Path(self.sysfs_root) / self.device


class BluetoothConfig(BaseModel):
    """Bluetooth listener configuration."""

    command: str = "bluetoothctl"
    keepalive_interval_s: float = 60.0
    query_timeout_s: float = 5.0

    @validator("keepalive_interval_s", "query_timeout_s")
    def validate_intervals(cls, v):
        """Reject zero or negative intervals."""
        if v <= 0:
            raise ValueError("bluetooth intervals must be positive")
        return v


class WifiConfig(BaseModel):
    """Wifi listener configuration."""

    command: str = "nmcli"
    query_timeout_s: float = 5.0

    @validator("query_timeout_s")
    def validate_timeout(cls, v):
        """Reject zero or negative timeouts."""
        if v <= 0:
            raise ValueError("wifi.query_timeout_s must be positive")
        return v


class HyprlandConfig(BaseModel):
    """Window-manager listener configuration."""

    hyprctl: str = "hyprctl"
    socket_path: Optional[str] = None
    reconnect_delay_s: float = 1.0
    read_timeout_s: float = 0.5
    min_workspaces: int = 5
    query_timeout_s: float = 5.0

    @validator("reconnect_delay_s", "read_timeout_s", "query_timeout_s")
    def validate_intervals(cls, v):
        """Reject zero or negative intervals."""
        if v <= 0:
            raise ValueError("hyprland intervals must be positive")
        return v

    @validator("min_workspaces")
    def validate_min_workspaces(cls, v):
        """At least one workspace is always shown."""
        if v < 1:
            raise ValueError("hyprland.min_workspaces must be at least 1")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    console_level: str = "INFO"
    file_level: str = "DEBUG"
    log_dir: Optional[str] = None


class Config(BaseModel):
    """Main configuration class."""

    battery: BatteryConfig = Field(default_factory=BatteryConfig)
    bluetooth: BluetoothConfig = Field(default_factory=BluetoothConfig)
    wifi: WifiConfig = Field(default_factory=WifiConfig)
    hyprland: HyprlandConfig = Field(default_factory=HyprlandConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the configuration file path."""
        override = os.environ.get("HPANEL_CONFIG")
        if override:
            return Path(override).expanduser().resolve()

        config_home = os.environ.get("XDG_CONFIG_HOME") or "~/.config"
        return (Path(config_home).expanduser() / "hypr-panel" / "config.yaml").resolve()

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        return self.dict()

    def to_yaml(self) -> str:
        """Convert config to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml_file(cls, config_path: Path) -> "Config":
        """Load configuration from YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save_to_yaml_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            f.write(self.to_yaml())


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create with defaults."""
    if config_path is None:
        config_path = Config.get_config_path()

    if config_path.exists():
        try:
            return Config.from_yaml_file(config_path)
        except Exception as e:
            # If config file is corrupted, fall back to defaults
            logger.warning(f"Failed to load config from {config_path}: {e}. Using default configuration.")
            return Config()

    config = Config()

    try:
        config.save_to_yaml_file(config_path)
    except OSError as e:
        logger.warning(f"Could not write default config to {config_path}: {e}")

    return config


def get_effective_config() -> Config:
    """Get the effective configuration (load or create)."""
    return load_config()

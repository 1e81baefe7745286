"""Configuration management for Purchase Tracker."""

import tomllib
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any

from .data_store import DEFAULT_STORAGE_KEY


@dataclass
class DataConfig:
    """Local storage configuration."""

    storage_dir: Path
    storage_key: str = DEFAULT_STORAGE_KEY


@dataclass
class RemoteConfig:
    """Remote relational store configuration."""

    database_path: Path
    timeout: float = 5.0


@dataclass
class DefaultsConfig:
    """Default values for manual purchase entry."""

    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    supplier: str | None = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    remote: RemoteConfig
    defaults: DefaultsConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def remote(self) -> RemoteConfig:
        """Get remote store configuration."""
        return self._config.remote

    @property
    def defaults(self) -> DefaultsConfig:
        """Get defaults configuration."""
        return self._config.defaults

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._config.logging

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "purchase-tracker" / "config.toml",
            Path.home() / ".purchase-tracker" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "purchase-tracker" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        data_section = data.get("data", {})
        remote_section = data.get("remote", {})
        defaults_section = data.get("defaults", {})

        storage_dir = Path(
            data_section.get("storage_dir", "~/purchase-tracker/data")
        ).expanduser()
        database_path = remote_section.get("database_path")

        return Config(
            data=DataConfig(
                storage_dir=storage_dir,
                storage_key=data_section.get("storage_key", DEFAULT_STORAGE_KEY),
            ),
            remote=RemoteConfig(
                database_path=(
                    Path(database_path).expanduser()
                    if database_path
                    else storage_dir / "inventory.db"
                ),
                timeout=float(remote_section.get("timeout", 5.0)),
            ),
            defaults=DefaultsConfig(
                quantity=Decimal(str(defaults_section.get("quantity", 1))),
                unit_price=Decimal(str(defaults_section.get("unit_price", 0))),
                supplier=defaults_section.get("supplier"),
            ),
            logging=LoggingConfig(
                level=str(data.get("logging", {}).get("level", "WARNING")).upper(),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        storage_dir = Path.home() / "purchase-tracker" / "data"
        return Config(
            data=DataConfig(storage_dir=storage_dir),
            remote=RemoteConfig(database_path=storage_dir / "inventory.db"),
            defaults=DefaultsConfig(),
            logging=LoggingConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'data.storage_dir'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

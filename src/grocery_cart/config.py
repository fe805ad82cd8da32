"""Configuration management for Grocery Cart."""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path


@dataclass
class DefaultsConfig:
    """Default values configuration."""

    store: str = "Unknown Store"
    unit: str = "pc"
    category: str = "Other"


@dataclass
class InsightsConfig:
    """Insights window and ranking configuration."""

    recent_days: int = 30
    top_items: int = 5
    trend_days: int = 7


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    defaults: DefaultsConfig
    insights: InsightsConfig
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
    def defaults(self) -> DefaultsConfig:
        """Get defaults configuration."""
        return self._config.defaults

    @property
    def insights(self) -> InsightsConfig:
        """Get insights configuration."""
        return self._config.insights

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._config.logging

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "grocery-cart" / "config.toml",
            Path.home() / ".grocery-cart" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "grocery-cart" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        defaults = data.get("defaults", {})
        insights = data.get("insights", {})

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data.get("data", {}).get("storage_dir", "~/grocery-cart/data")
                ).expanduser(),
            ),
            defaults=DefaultsConfig(
                store=defaults.get("store", "Unknown Store"),
                unit=defaults.get("unit", "pc"),
                category=defaults.get("category", "Other"),
            ),
            insights=InsightsConfig(
                recent_days=insights.get("recent_days", 30),
                top_items=insights.get("top_items", 5),
                trend_days=insights.get("trend_days", 7),
            ),
            logging=LoggingConfig(
                level=str(data.get("logging", {}).get("level", "WARNING")).upper(),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "grocery-cart" / "data"),
            defaults=DefaultsConfig(),
            insights=InsightsConfig(),
            logging=LoggingConfig(),
        )

    def configure_logging(self) -> None:
        """Apply the configured log level to the root logger."""
        level = logging.getLevelName(self.logging.level)
        if not isinstance(level, int):
            logger.warning("Unknown log level %r, using WARNING", self.logging.level)
            level = logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'insights.recent_days'
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

"""Configuration management for iconmatte."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .paths import get_config_dir


logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG = {
    "threshold": 30,
    "edge_smoothing": True,
    "target_background_color": None,
    "edge_cleanup": False,
    "erode_pixels": 0,
    "remove_light_edges": False,
    "remove_liquid_glass": False,
    "glass_outline_width": 2,
    "glass_brightness": 200,
    "quality_method": None,
    "quality_params": {},
    "icon_scale": 0.8,
    "output_suffix": "_no_bg",
    "log_level": "INFO",
    "auto_save_settings": True,
}


class ConfigManager:
    """
    Manage user preferences with JSON persistence.

    Configuration is stored in the user's config directory
    and persists between runs.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Optional custom path for the config file.
                        Defaults to user config directory.
        """
        self.config_path = Path(config_path) if config_path else get_config_dir() / "settings.json"
        self._config = self._load_config()

    def _load_config(self) -> dict:
        """Load configuration from file, merging with defaults."""
        config = json.loads(json.dumps(DEFAULT_CONFIG))

        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    saved_config = json.load(f)
                if not isinstance(saved_config, dict):
                    raise ValueError("top-level value is not an object")
                config.update(saved_config)
            except (json.JSONDecodeError, ValueError, IOError) as e:
                logger.warning("Could not load config %s: %s", self.config_path, e)

        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)
        except IOError as e:
            logger.warning("Could not save config %s: %s", self.config_path, e)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Read one stored setting.

        Processing keys use the ProcessingOptions field names (for example
        ``threshold`` or ``quality_params``); the remaining keys configure
        the command-line tool.

        Args:
            key: Setting name.
            default: Returned when the file and DEFAULT_CONFIG lack the key.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any, auto_save: bool = True) -> None:
        """
        Store one setting.

        Values are not validated here; invalid processing values surface
        as ValueError from processing_options().

        Args:
            key: Setting name.
            value: JSON-serializable value.
            auto_save: Write settings.json now, unless the stored
                       ``auto_save_settings`` flag is off.
        """
        self._config[key] = value
        if auto_save and self._config.get("auto_save_settings", True):
            self.save()

    def reset(self, key: Optional[str] = None) -> None:
        """
        Restore DEFAULT_CONFIG values and write the file.

        Args:
            key: Setting to restore. If None, every setting is restored.
        """
        if key is None:
            self._config = json.loads(json.dumps(DEFAULT_CONFIG))
        elif key in DEFAULT_CONFIG:
            self._config[key] = json.loads(json.dumps(DEFAULT_CONFIG[key]))
        self.save()

    def get_all(self) -> dict:
        """Copy of every setting, stored values over DEFAULT_CONFIG."""
        return self._config.copy()

    def update(self, updates: dict) -> None:
        """Store several settings, saving once when auto-save is on."""
        self._config.update(updates)
        if self._config.get("auto_save_settings", True):
            self.save()

    def processing_options(self, **overrides):
        """
        Build ProcessingOptions from the stored defaults.

        Args:
            **overrides: Values that take precedence over stored ones.

        Returns:
            Validated ProcessingOptions.

        Raises:
            ValueError: If the stored or overridden values are invalid.
        """
        from ..engine.options import ProcessingOptions

        values = self.get_all()
        values.update(overrides)
        return ProcessingOptions.from_dict(values)

    def store_processing_options(self, options) -> None:
        """Persist the given ProcessingOptions as the new defaults."""
        self.update(options.to_dict())

"""Persistent configuration manager."""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from huefy.models.config import HuefyConfig

logger = logging.getLogger(__name__)

# Keys that `huefy config set` may write
SETTABLE_KEYS = ("api_key", "transport", "base_url", "endpoint", "timeout_ms", "kernel_binary")


class PersistentConfigManager:
    """Manages persistent configuration in ~/.huefy/config.json"""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            config_dir: Directory holding config.json (defaults to ~/.huefy)
        """
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".huefy"
        self.config_file = self.config_dir / "config.json"

    def load(self) -> Optional[dict]:
        """Load saved settings.

        Returns:
            Settings dict or None if the file doesn't exist or is unreadable
        """
        if not self.config_file.exists():
            return None

        try:
            with open(self.config_file, "r") as f:
                settings = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config from {self.config_file}: {e}")
            return None

        if not isinstance(settings, dict):
            logger.warning(f"Ignoring {self.config_file}: expected a JSON object")
            return None
        return settings

    def save(self, settings: dict) -> bool:
        """Save settings.

        Args:
            settings: Settings dict to save

        Returns:
            True if successful, False otherwise
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                json.dump(settings, f, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save config to {self.config_file}: {e}")
            return False

    def set_value(self, key: str, value: Any) -> dict:
        """Update one saved setting.

        Args:
            key: Setting name (one of ``SETTABLE_KEYS``)
            value: New value; ``timeout_ms`` is stored as an int

        Returns:
            Settings after the update

        Raises:
            KeyError: If the key cannot be set
            ValueError: If ``timeout_ms`` is not an integer
        """
        if key not in SETTABLE_KEYS:
            raise KeyError(key)
        if key == "timeout_ms":
            value = int(value)

        settings = self.load() or {}
        settings[key] = value
        self.save(settings)
        return settings

    def apply_to_config(
        self, config: Optional[Union[HuefyConfig, dict[str, Any]]], settings: dict
    ) -> HuefyConfig:
        """Layer saved settings over a configuration.

        Args:
            config: Base configuration, raw values still to be validated
                (e.g. from ``HuefyConfig.yaml_settings``), or None to build
                one from settings alone
            settings: Settings dict from saved config

        Returns:
            New HuefyConfig (configs are immutable)

        Raises:
            ValidationError: If the combined values are not a valid configuration
        """
        updates = {key: settings[key] for key in SETTABLE_KEYS if settings.get(key) is not None}
        if isinstance(config, HuefyConfig):
            base = config.model_dump()
        else:
            base = dict(config or {})
        return HuefyConfig(**{**base, **updates})

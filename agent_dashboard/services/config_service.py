"""Configuration loading service.

Loads config.yaml, applies environment overrides for connection settings
and secrets, and validates the result against AppConfig.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from agent_dashboard.models.config import AppConfig

logger = logging.getLogger(__name__)

# Environment variable -> (config section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DASHBOARD_WEBHOOK_SECRET": ("webhook", "secret"),
    "NEO4J_URI": ("event_store", "uri"),
    "NEO4J_USER": ("event_store", "user"),
    "NEO4J_PASSWORD": ("event_store", "password"),
    "CHROMA_HOST": ("event_archive", "host"),
    "CHROMA_PORT": ("event_archive", "port"),
}


class ConfigService:
    """Service for loading and managing application configuration.

    Handles:
    - Loading config from config.yaml
    - Environment overrides for secrets and connection settings
    - Validating against the Pydantic schema
    - Saving updated config
    """

    def __init__(
        self,
        config_path: str | Path = "config.yaml",
        environ: Mapping[str, str] | None = None,
    ):
        """Initialize the config service.

        Args:
            config_path: Path to the config file.
            environ: Environment to read overrides from (defaults to os.environ).
        """
        self.config_path = Path(config_path)
        self._environ = environ if environ is not None else os.environ
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        """Load and validate configuration.

        Returns:
            Validated AppConfig instance.
        """
        raw: dict[str, Any] = {}
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
        else:
            try:
                with open(self.config_path) as f:
                    raw = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Error reading config file: {e}, using defaults")
                raw = {}

        if not isinstance(raw, dict):
            logger.warning("Config file is not a mapping, using defaults")
            raw = {}

        merged = self._apply_env_overrides(raw)

        try:
            self._config = AppConfig(**merged)
        except Exception as e:
            logger.warning(f"Config validation error: {e}, using defaults")
            self._config = AppConfig(**self._apply_env_overrides({}))

        return self._config

    def get_config(self) -> AppConfig:
        """Get the current configuration.

        Loads from disk if not already loaded.
        """
        if self._config is None:
            return self.load()
        return self._config

    def reload(self) -> AppConfig:
        """Force reload configuration from disk."""
        self._config = None
        return self.load()

    def save(self, config: AppConfig | None = None) -> bool:
        """Save configuration to disk. Secrets are never written.

        Args:
            config: Config to save. Uses current config if not provided.

        Returns:
            True if save succeeded.
        """
        config = config or self._config
        if config is None:
            return False

        config_dict = config.model_dump(mode="json")
        config_dict["webhook"]["secret"] = None
        config_dict["event_store"]["password"] = None

        try:
            with open(self.config_path, "w") as f:
                yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
            return True
        except OSError as e:
            logger.error(f"Error saving config: {e}")
            return False

    def _apply_env_overrides(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Overlay environment variables onto the raw config.

        Args:
            raw: Raw config dictionary from YAML.

        Returns:
            A new dictionary with overrides applied.
        """
        merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in raw.items()}
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                merged.setdefault(section, {})[key] = value
                logger.debug(f"Config {section}.{key} set from {env_name}")
        return merged

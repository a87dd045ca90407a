"""Configuration loader for JSON/YAML listener files and environment variables."""

import os
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union

from pydantic import ValidationError

from .schema import SyncConfig
from ..exceptions import ConfigurationError
from ..utils.logging import get_logger


class ConfigLoader:
    """Loads and validates listener configuration from various sources."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> SyncConfig:
        """Load configuration from a JSON or YAML file.

        ``${VAR}`` references in string values are expanded from the
        environment so credentials stay out of the file.

        Raises:
            ConfigurationError: If the file cannot be loaded or validated
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading configuration from file", file_path=str(file_path))

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if file_path.suffix.lower() in ['.yaml', '.yml']:
                    data = yaml.safe_load(f) or {}
                elif file_path.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> SyncConfig:
        """Load configuration from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        data = self._expand_env(data)
        data = self._apply_env_overrides(data)

        try:
            config = SyncConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        self.logger.info(
            "Configuration loaded",
            listeners_count=len(config.listeners),
            active_listeners=len(config.get_active_listeners())
        )

        return config

    def _expand_env(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._expand_env(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._expand_env(v) for v in value]
        elif isinstance(value, str):
            return os.path.expandvars(value)
        return value

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration data.

        Supported: SNAPSYNC_DEFAULT_MOUNTPOINT
        """
        env_overrides = {}

        if os.getenv('SNAPSYNC_DEFAULT_MOUNTPOINT'):
            env_overrides['default_mountpoint'] = os.getenv('SNAPSYNC_DEFAULT_MOUNTPOINT')

        if env_overrides:
            self.logger.info("Applied environment variable overrides", overrides=list(env_overrides.keys()))
            data = {**data, **env_overrides}

        return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> SyncConfig:
    """Load listener configuration, falling back to an empty configuration.

    Looks in this order:
    1. ``config_path`` argument
    2. SNAPSYNC_CONFIG_FILE environment variable
    3. ``sync.config_path`` from settings
    """
    from .settings import get_settings

    loader = ConfigLoader()
    logger = get_logger("load_config")

    if config_path:
        return loader.load_from_file(config_path)

    env_file = os.getenv('SNAPSYNC_CONFIG_FILE')
    if env_file:
        return loader.load_from_file(env_file)

    default_path = Path(get_settings().sync.config_path)
    if default_path.exists():
        return loader.load_from_file(default_path)

    logger.warning("No configuration file found, no listeners configured", file=str(default_path))
    return loader.load_from_dict({})

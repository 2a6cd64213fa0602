"""Configuration manager for loading and merging configs."""

import logging
from pathlib import Path
from typing import Any

import toml
from pydantic import ValidationError

from teamflow.config.defaults import PROJECT_CONFIG_FILENAME
from teamflow.config.schema import TeamflowConfig, get_config_file
from teamflow.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration loading, merging, and access."""

    _config: TeamflowConfig | None = None

    @classmethod
    def get_config(cls) -> TeamflowConfig:
        """Get the current configuration, loading if necessary."""
        if cls._config is None:
            cls._config = cls.load_config()
        return cls._config

    @classmethod
    def load_config(cls) -> TeamflowConfig:
        """Load configuration from all sources.

        Priority (highest to lowest):
        1. Project-level config (.teamflow.toml in cwd or parents)
        2. User config (~/.config/teamflow/config.toml)
        3. Default config
        """
        config_dict: dict[str, Any] = {}

        user_config_file = get_config_file()
        if user_config_file.exists():
            config_dict = cls._deep_merge(config_dict, cls._read_toml(user_config_file))

        project_config_file = cls._find_project_config()
        if project_config_file and project_config_file.exists():
            config_dict = cls._deep_merge(config_dict, cls._read_toml(project_config_file))

        if not config_dict:
            return TeamflowConfig.default()

        try:
            return TeamflowConfig.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def reset(cls) -> None:
        """Drop the cached configuration."""
        cls._config = None

    @classmethod
    def _read_toml(cls, path: Path) -> dict[str, Any]:
        logger.debug("Loading config from %s", path)
        try:
            return toml.load(path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigurationError(f"Failed to read {path}: {e}") from e

    @classmethod
    def _find_project_config(cls) -> Path | None:
        """Find project-level config file by searching up from cwd."""
        cwd = Path.cwd()
        for parent in [cwd, *cwd.parents]:
            config_file = parent / PROJECT_CONFIG_FILENAME
            if config_file.exists():
                return config_file
            # Stop at home directory
            if parent == Path.home():
                break
        return None

    @classmethod
    def _deep_merge(
        cls, base: dict[str, Any], override: dict[str, Any]
    ) -> dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

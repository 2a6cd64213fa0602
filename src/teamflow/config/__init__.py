"""Configuration management."""

from teamflow.config.manager import ConfigManager
from teamflow.config.schema import TeamflowConfig

__all__ = ["ConfigManager", "TeamflowConfig"]

"""Settings and configuration for the session tree store."""

from .config import AppConstants, ConfigPaths, DefaultSettings, StoreConstants, get_config_paths
from .manager import SettingsManager

__all__ = [
    "AppConstants",
    "ConfigPaths",
    "DefaultSettings",
    "StoreConstants",
    "get_config_paths",
    "SettingsManager",
]

"""
Configuration constants and settings for the session tree store.

This module provides application constants, platform-aware configuration
paths and the default settings used by the settings manager.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

CONFIG_DIR_ENV_VAR = "SESSIONTREE_CONFIG_DIR"


class AppConstants:
    """Application metadata and identification constants."""

    APP_VERSION = "1.0.0"

    # Persisted document format
    STORAGE_FORMAT_VERSION = 1
    MAX_STORE_FILE_SIZE = 50 * 1024 * 1024  # 50MB


class StoreConstants:
    """Constants of the session tree and its persistence."""

    ROOT_NAME = "Sessions"
    IMPORTED_FOLDER_NAME = "Imported"
    DEFAULT_SAVE_DELAY_MS = 5000
    DEFAULT_BACKUP_COUNT = 20
    BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
    DEFAULT_SSH_PORT = 22


class ConfigPaths:
    """Platform-aware configuration paths."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.CONFIG_DIR = Path(config_dir) if config_dir else self._get_config_dir()
        self.SESSIONS_FILE = self.CONFIG_DIR / "sessions.json"
        self.SETTINGS_FILE = self.CONFIG_DIR / "settings.json"
        self.SSH_CONFIG_FILE = Path.home() / ".ssh" / "config"

    @staticmethod
    def _get_config_dir() -> Path:
        override = os.environ.get(CONFIG_DIR_ENV_VAR)
        if override:
            return Path(override).expanduser()

        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "sessiontree"

        home = Path.home()
        if sys.platform == "win32":
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / "sessiontree"
            return home / "AppData" / "Roaming" / "sessiontree"
        elif sys.platform == "darwin":
            return home / "Library" / "Application Support" / "sessiontree"
        return home / ".config" / "sessiontree"


class DefaultSettings:
    """Default application settings."""

    SEARCH_MODES = ("case_sensitive", "case_insensitive", "regex")

    @staticmethod
    def get_defaults() -> Dict[str, Any]:
        return {
            # Session tree
            "root_name": StoreConstants.ROOT_NAME,
            "sessions_file": "",  # empty = CONFIG_DIR/sessions.json
            "ssh_config_source": False,
            # Persistence
            "save_delay_ms": StoreConstants.DEFAULT_SAVE_DELAY_MS,
            "backup_count": StoreConstants.DEFAULT_BACKUP_COUNT,
            # Search
            "search_mode": "case_insensitive",
            # Advanced
            "debug_mode": False,
            "log_level": "INFO",
        }


_config_paths: Optional[ConfigPaths] = None


def get_config_paths() -> ConfigPaths:
    """Return the process-wide configuration paths."""
    global _config_paths
    if _config_paths is None:
        _config_paths = ConfigPaths()
    return _config_paths

# sessiontree/settings/manager.py
import hashlib
import json
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..utils.exceptions import ConfigValidationError
from ..utils.logger import (
    disable_debug_mode,
    enable_debug_mode,
    get_logger,
    log_error_with_context,
    set_console_level,
)
from .config import AppConstants, DefaultSettings, get_config_paths


@dataclass(slots=True)
class SettingsMetadata:
    """Metadata for settings file."""

    version: str
    created_at: float
    modified_at: float
    checksum: Optional[str] = None


def _settings_checksum(settings: Dict[str, Any]) -> str:
    settings_json = json.dumps(settings, sort_keys=True, separators=(",", ":"))
    return hashlib.md5(settings_json.encode("utf-8"), usedforsecurity=False).hexdigest()


class SettingsValidator:
    """Validates settings values and structure."""

    def __init__(self):
        self.logger = get_logger("sessiontree.settings.validator")

    def validate_save_delay(self, value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and value > 0

    def validate_backup_count(self, value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and value >= 0

    def validate_search_mode(self, value: Any) -> bool:
        return value in DefaultSettings.SEARCH_MODES

    def validate_root_name(self, value: Any) -> bool:
        return isinstance(value, str) and bool(value.strip())

    def validate_bool(self, value: Any) -> bool:
        return isinstance(value, bool)

    def validate_log_level(self, value: Any) -> bool:
        return isinstance(value, str) and value.upper() in {
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        }

    def validators(self) -> Dict[str, Callable[[Any], bool]]:
        return {
            "save_delay_ms": self.validate_save_delay,
            "backup_count": self.validate_backup_count,
            "search_mode": self.validate_search_mode,
            "root_name": self.validate_root_name,
            "log_level": self.validate_log_level,
            "ssh_config_source": self.validate_bool,
            "debug_mode": self.validate_bool,
        }

    def validate_settings_structure(self, settings: Dict[str, Any]) -> List[str]:
        errors = []
        for key, validator in self.validators().items():
            if key in settings and not validator(settings[key]):
                errors.append(f"Invalid value for setting '{key}': {settings[key]}")
        return errors


class SettingsManager:
    """Loads, validates and persists the store settings."""

    def __init__(self, settings_file: Optional[Path] = None):
        self.logger = get_logger("sessiontree.settings.manager")
        self.validator = SettingsValidator()
        self.config_paths = get_config_paths()
        self.settings_file = Path(settings_file or self.config_paths.SETTINGS_FILE)
        self._defaults = DefaultSettings.get_defaults()
        self._settings: Dict[str, Any] = {}
        self._metadata: Optional[SettingsMetadata] = None
        self._dirty = False
        self._lock = threading.RLock()
        self._change_listeners: List[Callable[[str, Any, Any], None]] = []
        self._initialize()
        self.logger.info("Settings manager initialized")

    def _initialize(self):
        with self._lock:
            self._settings = self._load_settings_safe()
            self._validate_and_repair()
            self._merge_with_defaults()
        if self.get("debug_mode", False):
            enable_debug_mode()
        else:
            set_console_level(self.get("log_level", "INFO"))

    def _parse_settings_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if "settings" in data and "metadata" in data:
            settings = data.get("settings", {})
            metadata = data.get("metadata", {})
            if isinstance(metadata, dict):
                try:
                    self._metadata = SettingsMetadata(**metadata)
                except TypeError:
                    self.logger.warning("Settings metadata is malformed, ignoring it")
                    self._metadata = None
                if (
                    self._metadata
                    and self._metadata.checksum
                    and isinstance(settings, dict)
                    and _settings_checksum(settings) != self._metadata.checksum
                ):
                    self.logger.warning("Settings checksum mismatch - file may be corrupted")
            return settings

        # Plain mapping without the metadata wrapper
        self._metadata = None
        self._dirty = True
        return data

    def _load_settings_safe(self) -> Dict[str, Any]:
        if not self.settings_file.exists():
            self.logger.info("Settings file not found, using defaults")
            return self._defaults.copy()
        try:
            with open(self.settings_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("Settings file must contain a JSON object at the root")
            settings = self._parse_settings_data(data)
            if not isinstance(settings, dict):
                raise ValueError("Settings file has invalid structure")
            return settings
        except json.JSONDecodeError as e:
            self.logger.error(f"Settings file is corrupted: {e}")
            return self._defaults.copy()
        except ValueError as e:
            self.logger.error(f"Settings file has invalid structure: {e}")
            return self._defaults.copy()
        except OSError as e:
            log_error_with_context(e, "settings loading", "sessiontree.settings")
            return self._defaults.copy()

    def _validate_and_repair(self):
        errors = self.validator.validate_settings_structure(self._settings)
        if not errors:
            return
        self.logger.warning(f"Settings validation failed: {errors}")
        for error in errors:
            key = error.split("'")[1]
            if key in self._defaults:
                self._settings[key] = self._defaults[key]
                self._dirty = True
        self.logger.info("Settings automatically repaired")

    def _merge_with_defaults(self):
        for key, default_value in self._defaults.items():
            if key not in self._settings:
                self._settings[key] = default_value
                self._dirty = True

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def save_settings(self, force: bool = False) -> None:
        with self._lock:
            if not self._dirty and not force:
                return
            settings_to_save = self._settings.copy()
            current_time = time.time()
            if self._metadata:
                self._metadata.modified_at = current_time
            else:
                self._metadata = SettingsMetadata(
                    version=AppConstants.APP_VERSION,
                    created_at=current_time,
                    modified_at=current_time,
                )
            self._metadata.checksum = _settings_checksum(settings_to_save)
            save_data = {
                "metadata": asdict(self._metadata),
                "settings": settings_to_save,
            }
            try:
                self.settings_file.parent.mkdir(parents=True, exist_ok=True)
                temp_file = self.settings_file.with_suffix(".tmp")
                with open(temp_file, "w", encoding="utf-8") as f:
                    json.dump(save_data, f, indent=2, ensure_ascii=False)
                temp_file.replace(self.settings_file)
                self._dirty = False
            except OSError as e:
                log_error_with_context(e, "settings saving", "sessiontree.settings")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._settings.get(key, default)

    def set(self, key: str, value: Any, save_immediately: bool = True) -> None:
        with self._lock:
            validator = self.validator.validators().get(key)
            if validator and not validator(value):
                raise ConfigValidationError(key, value, f"Invalid value for {key}")
            old_value = self._settings.get(key)
            self._settings[key] = value
            self._dirty = True
            if key == "debug_mode":
                if value:
                    enable_debug_mode()
                else:
                    disable_debug_mode()
                    set_console_level(self._settings.get("log_level", "INFO"))
            elif key == "log_level" and not self._settings.get("debug_mode", False):
                set_console_level(value)
        self._notify_change_listeners(key, old_value, value)
        if save_immediately:
            self.save_settings()

    def _notify_change_listeners(self, key: str, old_value: Any, new_value: Any):
        for listener in list(self._change_listeners):
            try:
                listener(key, old_value, new_value)
            except Exception as e:
                self.logger.error(f"Change listener failed for key '{key}': {e}")

    def add_change_listener(self, listener: Callable[[str, Any, Any], None]):
        if listener not in self._change_listeners:
            self._change_listeners.append(listener)

    def remove_change_listener(self, listener: Callable[[str, Any, Any], None]):
        if listener in self._change_listeners:
            self._change_listeners.remove(listener)

    def get_sessions_file(self) -> Path:
        configured = self.get("sessions_file", "")
        if configured:
            return Path(configured).expanduser()
        return self.config_paths.SESSIONS_FILE

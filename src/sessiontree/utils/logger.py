# sessiontree/utils/logger.py
"""
Structured logging system for the session tree store.

This module provides a centralized logging system with different levels,
formatters, and handlers for debugging, monitoring, and error tracking.
"""

import logging
import logging.handlers
import os
import sys
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

DEBUG_ENV_VAR = "SESSIONTREE_DEBUG"
LOG_DIR_ENV_VAR = "SESSIONTREE_LOG_DIR"


class LogLevel(Enum):
    """Log levels for the application."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


def _debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes")


def _default_log_dir() -> Path:
    override = os.environ.get(LOG_DIR_ENV_VAR)
    if override:
        return Path(override).expanduser()
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config) if xdg_config else Path.home() / ".config"
    return base / "sessiontree" / "logs"


class LoggerConfig:
    """Configuration for the logging system."""

    def __init__(self, log_dir: Optional[Path] = None):
        self.log_dir = log_dir or _default_log_dir()
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.file_logging = True
        except OSError:
            # Read-only home or sandbox: console only.
            self.file_logging = False

        self.main_log_file = self.log_dir / "sessiontree.log"
        self.error_log_file = self.log_dir / "sessiontree_errors.log"
        self.debug_log_file = self.log_dir / "sessiontree_debug.log"

        self.max_file_size = 10 * 1024 * 1024  # 10MB
        self.backup_count = 5
        self.console_level = LogLevel.INFO
        self.file_level = LogLevel.DEBUG
        self.error_file_level = LogLevel.ERROR


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        formatted = super().format(record)
        # Reset levelname for other handlers
        record.levelname = levelname
        return formatted


class ThreadSafeLogger:
    """Thread-safe logger implementation."""

    def __init__(self, name: str, config: LoggerConfig):
        self.name = name
        self.config = config
        self._logger = logging.getLogger(name)
        self._lock = threading.Lock()
        self._setup_logger()

    def _rotating_handler(self, path: Path, level: int, backup_count: int):
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=self.config.max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        return handler

    def _setup_logger(self):
        """Set up the logger with handlers and formatters."""
        with self._lock:
            if getattr(self._logger, "_sessiontree_configured", False):
                return

            self._logger.setLevel(logging.DEBUG)

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.config.console_level.value)
            console_handler.setFormatter(
                ColoredFormatter(
                    fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                    datefmt="%H:%M:%S",
                )
            )
            self._logger.addHandler(console_handler)

            if self.config.file_logging:
                file_formatter = logging.Formatter(
                    fmt="%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
                try:
                    main_handler = self._rotating_handler(
                        self.config.main_log_file,
                        self.config.file_level.value,
                        self.config.backup_count,
                    )
                    main_handler.setFormatter(file_formatter)
                    self._logger.addHandler(main_handler)

                    error_handler = self._rotating_handler(
                        self.config.error_log_file,
                        self.config.error_file_level.value,
                        self.config.backup_count,
                    )
                    error_handler.setFormatter(file_formatter)
                    self._logger.addHandler(error_handler)

                    if _debug_enabled():
                        debug_handler = self._rotating_handler(
                            self.config.debug_log_file, logging.DEBUG, 2
                        )
                        debug_handler.setFormatter(file_formatter)
                        debug_handler.addFilter(
                            lambda record: record.levelno == logging.DEBUG
                        )
                        self._logger.addHandler(debug_handler)
                except OSError as e:
                    self._logger.warning(f"File logging disabled: {e}")

            self._logger._sessiontree_configured = True

    def debug(self, message: str, **kwargs):
        self._logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.warning(message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self._logger.error(message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, exc_info: bool = True, **kwargs):
        self._logger.critical(message, exc_info=exc_info, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        self._logger.exception(message, **kwargs)


class LoggerManager:
    """Centralized logger manager."""

    _instance: Optional["LoggerManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LoggerManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self.config = LoggerConfig()
        self._loggers: Dict[str, ThreadSafeLogger] = {}
        logging.getLogger("gi").setLevel(logging.WARNING)

    def get_logger(self, name: str) -> ThreadSafeLogger:
        """
        Get or create a logger with the given name.

        Args:
            name: Logger name (usually module name)

        Returns:
            ThreadSafeLogger instance
        """
        if name not in self._loggers:
            with self._lock:
                if name not in self._loggers:
                    self._loggers[name] = ThreadSafeLogger(name, self.config)
        return self._loggers[name]

    def set_console_level(self, level: LogLevel):
        """Set console logging level for all loggers."""
        with self._lock:
            self.config.console_level = level
            for logger in self._loggers.values():
                for handler in logger._logger.handlers:
                    if (
                        isinstance(handler, logging.StreamHandler)
                        and getattr(handler, "stream", None) is sys.stdout
                    ):
                        handler.setLevel(level.value)

    def enable_debug_mode(self):
        self.set_console_level(LogLevel.DEBUG)
        os.environ[DEBUG_ENV_VAR] = "1"

    def disable_debug_mode(self):
        self.set_console_level(LogLevel.INFO)
        os.environ.pop(DEBUG_ENV_VAR, None)

    def cleanup_old_logs(self, days_to_keep: int = 30):
        """
        Clean up old log files.

        Args:
            days_to_keep: Number of days to keep logs
        """
        if not self.config.file_logging:
            return
        cutoff_time = datetime.now().timestamp() - (days_to_keep * 24 * 60 * 60)
        for log_file in self.config.log_dir.glob("*.log*"):
            try:
                if log_file.stat().st_mtime < cutoff_time:
                    log_file.unlink()
            except OSError as e:
                self.get_logger("sessiontree.logger").warning(
                    f"Could not remove old log {log_file}: {e}"
                )

    def get_log_info(self) -> Dict[str, Any]:
        return {
            "log_dir": str(self.config.log_dir),
            "main_log": str(self.config.main_log_file),
            "error_log": str(self.config.error_log_file),
            "file_logging": self.config.file_logging,
            "console_level": self.config.console_level.name,
            "debug_enabled": _debug_enabled(),
            "active_loggers": list(self._loggers.keys()),
        }


_logger_manager = LoggerManager()


def get_logger(name: str = None) -> ThreadSafeLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (defaults to calling module)
    """
    if name is None:
        import inspect

        frame = inspect.currentframe()
        try:
            name = frame.f_back.f_globals.get("__name__", "unknown")
        finally:
            del frame
    return _logger_manager.get_logger(name)


def set_console_level(level: Union[LogLevel, str]):
    if isinstance(level, str):
        level = LogLevel[level.upper()]
    _logger_manager.set_console_level(level)


def enable_debug_mode():
    _logger_manager.enable_debug_mode()


def disable_debug_mode():
    _logger_manager.disable_debug_mode()


def cleanup_old_logs(days_to_keep: int = 30):
    _logger_manager.cleanup_old_logs(days_to_keep)


def get_log_info() -> Dict[str, Any]:
    return _logger_manager.get_log_info()


def log_session_event(event_type: str, item_name: str, details: str = ""):
    """
    Log session or folder-related events.

    Args:
        event_type: Type of event (added, removed, folder_added, ...)
        item_name: Name of the session or folder
        details: Additional details about the event
    """
    logger = get_logger("sessiontree.sessions")
    item_type = "Folder" if "folder" in event_type else "Session"
    message = f"{item_type} '{item_name}' {event_type.replace('folder_', '')}"
    if details:
        message += f": {details}"
    logger.info(message)


def log_error_with_context(error: Exception, context: str, logger_name: str = None):
    """
    Log an error with context information.

    Args:
        error: Exception that occurred
        context: Context where the error occurred
        logger_name: Name of logger to use (auto-detected if None)
    """
    logger = get_logger(logger_name or "sessiontree")
    logger.error(f"Error in {context}: {str(error)}", exc_info=True)

"""
Custom exceptions for the session tree store.

This module defines custom exception classes that provide more specific
error handling and better debugging information throughout the application.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    SESSION = "session"
    SOURCE = "source"
    STORAGE = "storage"
    CONFIG = "config"
    VALIDATION = "validation"
    SYSTEM = "system"


class SessionTreeError(Exception):
    """Base exception class for all session tree errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
    ):
        """
        Initialize base exception.

        Args:
            message: Technical error message for logging
            category: Error category for classification
            severity: Error severity level
            details: Additional details for debugging
            user_message: User-friendly message for display
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.user_message = user_message or self._generate_user_message()

    def _generate_user_message(self) -> str:
        category_messages = {
            ErrorCategory.SESSION: "A session error occurred",
            ErrorCategory.SOURCE: "A session source error occurred",
            ErrorCategory.STORAGE: "A data storage error occurred",
            ErrorCategory.CONFIG: "A configuration error occurred",
            ErrorCategory.VALIDATION: "A validation error occurred",
            ErrorCategory.SYSTEM: "A system error occurred",
        }
        return category_messages.get(self.category, "An unexpected error occurred")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "user_message": self.user_message,
        }

    def __str__(self) -> str:
        return f"[{self.category.value.upper()}:{self.severity.value.upper()}] {self.message}"


# Session tree structure exceptions
class SessionError(SessionTreeError):
    """Base class for session tree structure errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.SESSION)
        super().__init__(message, **kwargs)


class DuplicateNameError(SessionError):
    """Raised when a sibling with the same name already exists."""

    def __init__(self, name: str, folder_name: str = "", **kwargs):
        message = f"An item named '{name}' already exists in '{folder_name}'"
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("details", {"name": name, "folder": folder_name})
        kwargs.setdefault("user_message", f"An item named '{name}' already exists")
        super().__init__(message, **kwargs)
        self.name = name


class NodeNotFoundError(SessionError):
    """Raised when a lookup or removal target is absent."""

    def __init__(self, name: str, folder_name: str = "", **kwargs):
        message = f"'{name}' is not a child of '{folder_name}'"
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("details", {"name": name, "folder": folder_name})
        kwargs.setdefault("user_message", f"'{name}' could not be found")
        super().__init__(message, **kwargs)


class NodeOwnershipError(SessionError):
    """Raised when a mutation would break the single-parent tree invariant."""

    def __init__(self, name: str, reason: str, **kwargs):
        message = f"Cannot attach '{name}': {reason}"
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("details", {"name": name, "reason": reason})
        super().__init__(message, **kwargs)


class ReentrantMutationError(SessionError):
    """Raised when a change handler mutates the folder being dispatched."""

    def __init__(self, folder_name: str, **kwargs):
        message = f"Folder '{folder_name}' cannot be modified while dispatching changes"
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("details", {"folder": folder_name})
        super().__init__(message, **kwargs)


class SessionValidationError(SessionError):
    """Raised when session validation fails."""

    def __init__(self, session_name: str, validation_errors: list, **kwargs):
        message = f"Session '{session_name}' validation failed: {', '.join(validation_errors)}"
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault(
            "details", {"session_name": session_name, "errors": validation_errors}
        )
        kwargs.setdefault(
            "user_message", f"Session configuration is invalid: {validation_errors[0]}"
        )
        super().__init__(message, **kwargs)


# Source exceptions
class SourceError(SessionTreeError):
    """Base class for source-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.SOURCE)
        super().__init__(message, **kwargs)


class CircularSourceError(SourceError):
    """Raised when loading a source would reintroduce a source already in the tree."""

    def __init__(self, source_name: str, source_id: str, location: str = "", **kwargs):
        message = (
            f"Source '{source_name}' ({source_id}) at '{location}' is already "
            "present in the tree"
        )
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault(
            "details",
            {"source_name": source_name, "source_id": source_id, "location": location},
        )
        super().__init__(message, **kwargs)


class ReadOnlySourceError(SourceError):
    """Raised when mutating a read-only source."""

    def __init__(self, source_name: str, **kwargs):
        message = f"Source '{source_name}' is read-only"
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("details", {"source_name": source_name})
        kwargs.setdefault("user_message", f"'{source_name}' cannot be modified")
        super().__init__(message, **kwargs)


# Storage exceptions
class StorageError(SessionTreeError):
    """Base class for storage-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.STORAGE)
        super().__init__(message, **kwargs)


class StorageReadError(StorageError):
    """Raised when reading from storage fails."""

    def __init__(self, file_path: str, reason: str, **kwargs):
        message = f"Failed to read from '{file_path}': {reason}"
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("details", {"file_path": file_path, "reason": reason})
        kwargs.setdefault("user_message", "Could not load saved data")
        super().__init__(message, **kwargs)


class StorageWriteError(StorageError):
    """Raised when writing to storage fails."""

    def __init__(self, file_path: str, reason: str, **kwargs):
        message = f"Failed to write to '{file_path}': {reason}"
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("details", {"file_path": file_path, "reason": reason})
        kwargs.setdefault("user_message", "Could not save data")
        super().__init__(message, **kwargs)


class StorageCorruptedError(StorageError):
    """Raised when storage data is corrupted."""

    def __init__(self, file_path: str, details: str = "", **kwargs):
        message = f"Storage file '{file_path}' is corrupted"
        if details:
            message += f": {details}"
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault(
            "details", {"file_path": file_path, "corruption_details": details}
        )
        kwargs.setdefault("user_message", "Saved data appears to be corrupted")
        super().__init__(message, **kwargs)


# Configuration exceptions
class ConfigError(SessionTreeError):
    """Base class for configuration-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIG)
        super().__init__(message, **kwargs)


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(self, config_key: str, value: Any, reason: str, **kwargs):
        message = f"Invalid configuration for '{config_key}' (value: {value}): {reason}"
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault(
            "details", {"config_key": config_key, "value": value, "reason": reason}
        )
        kwargs.setdefault("user_message", f"Configuration error: {reason}")
        super().__init__(message, **kwargs)


# Validation exceptions
class ValidationError(SessionTreeError):
    """Base class for validation errors."""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("details", {}).update({"field": field, "value": value})
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class InvalidPathError(ValidationError):
    """Raised when a name path or id path is malformed."""

    def __init__(self, path: Any, reason: str, **kwargs):
        message = f"Invalid path {path!r}: {reason}"
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("user_message", f"Invalid path: {reason}")
        super().__init__(message, field="path", value=path, **kwargs)
        self.reason = reason


# Exception utilities
def handle_exception(
    exception: Exception,
    context: str = "",
    logger_name: str = None,
    reraise: bool = False,
) -> Optional[SessionTreeError]:
    """
    Handle an exception by logging it and optionally converting to SessionTreeError.

    Args:
        exception: Exception to handle
        context: Context where the exception occurred
        logger_name: Logger name to use
        reraise: Whether to re-raise the exception

    Returns:
        SessionTreeError if conversion was done, None otherwise
    """
    from .logger import log_error_with_context

    log_error_with_context(exception, context, logger_name)

    if isinstance(exception, SessionTreeError):
        converted_exception = exception
    else:
        converted_exception = SessionTreeError(
            message=str(exception),
            details={"original_type": type(exception).__name__, "context": context},
        )

    if reraise:
        if converted_exception is exception:
            raise exception
        raise converted_exception from exception
    return converted_exception

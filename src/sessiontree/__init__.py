"""Session Tree - hierarchical store of terminal connection sessions."""

from .settings.config import AppConstants

__version__ = AppConstants.APP_VERSION

# tests/conftest.py
"""
Pytest configuration for Session Tree tests.

This module configures the test environment, including path setup, a mock
for the GLib bindings and a manual clock that drives the save timers.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

# Add src directory to Python path
src_path = os.path.join(os.path.dirname(__file__), "..", "src")
sys.path.insert(0, src_path)

# Mock GObject introspection before any sessiontree imports
# This allows testing without PyGObject or a running main loop


def mock_gi_module():
    """Create a mock gi module to prevent import errors."""
    mock_gi = MagicMock()
    mock_gi.require_version = MagicMock()

    mock_repository = MagicMock()
    mock_repository.GLib = MagicMock()
    mock_repository.GObject = MagicMock()

    mock_gi.repository = mock_repository

    return mock_gi


# Only mock gi if not in a desktop environment
if "DISPLAY" not in os.environ and "WAYLAND_DISPLAY" not in os.environ:
    sys.modules["gi"] = mock_gi_module()
    sys.modules["gi.repository"] = sys.modules["gi"].repository


class FakeScheduler:
    """Scheduler with a manual clock; timers fire only on ``advance()``."""

    def __init__(self):
        self.now = 0
        self._timers = {}
        self._next_handle = 1

    def call_later(self, delay_ms, callback):
        handle = self._next_handle
        self._next_handle += 1
        self._timers[handle] = (self.now + delay_ms, callback)
        return handle

    def cancel(self, handle):
        self._timers.pop(handle, None)

    def pending(self):
        return len(self._timers)

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [(when, handle) for handle, (when, _cb) in self._timers.items() if when <= target]
            if not due:
                break
            when, handle = min(due)
            self.now = when
            _when, callback = self._timers.pop(handle)
            callback()
        self.now = target


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def settings_manager(tmp_path):
    from sessiontree.settings.manager import SettingsManager

    return SettingsManager(settings_file=tmp_path / "settings.json")


@pytest.fixture
def sessions_file(tmp_path):
    return tmp_path / "sessions.json"


@pytest.fixture
def store(sessions_file, settings_manager, scheduler):
    from sessiontree.sessions.store import SessionStore

    session_store = SessionStore(
        sessions_file=sessions_file,
        settings_manager=settings_manager,
        scheduler=scheduler,
    )
    session_store.load()
    return session_store

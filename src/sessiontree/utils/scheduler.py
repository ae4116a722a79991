# sessiontree/utils/scheduler.py
"""
Main-loop timer adapter.

Every timer callback runs on the GLib main loop, the same thread that owns
the session tree, so callbacks may touch the tree directly.
"""

from typing import Callable, Dict

from gi.repository import GLib

from .logger import get_logger


class GLibScheduler:
    """One-shot timers on the default GLib main context."""

    def __init__(self):
        self.logger = get_logger("sessiontree.utils.scheduler")
        self._timers: Dict[int, int] = {}
        self._next_handle = 1

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> int:
        """Run ``callback`` once after ``delay_ms`` milliseconds. Returns a handle."""
        handle = self._next_handle
        self._next_handle += 1

        def on_timeout():
            self._timers.pop(handle, None)
            callback()
            # Returns False to stop GLib.timeout_add repetition.
            return False

        self._timers[handle] = GLib.timeout_add(delay_ms, on_timeout)
        return handle

    def cancel(self, handle: int) -> None:
        source_id = self._timers.pop(handle, None)
        if source_id is not None:
            GLib.source_remove(source_id)

    def pending(self) -> int:
        return len(self._timers)

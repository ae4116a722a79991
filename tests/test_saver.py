# tests/test_saver.py
"""
Tests for debounced saving, driven by the manual scheduler from conftest.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class TestDebouncedSaver:
    """Tests for DebouncedSaver."""

    def test_requests_coalesce_into_one_flush(self, scheduler):
        """Several requests inside the delay produce a single flush after the last one."""
        from sessiontree.sessions.saver import DebouncedSaver

        flushes = []
        saver = DebouncedSaver(lambda: flushes.append(scheduler.now), scheduler, delay_ms=5000)

        saver.request()
        scheduler.advance(1000)
        saver.request()
        scheduler.advance(1000)
        saver.request()
        scheduler.advance(4999)
        assert flushes == []
        scheduler.advance(1)
        assert flushes == [7000]
        assert not saver.pending
        assert scheduler.pending() == 0

    def test_flush_now_cancels_timer(self, scheduler):
        """flush_now writes immediately and drops the pending timer."""
        from sessiontree.sessions.saver import DebouncedSaver

        flushes = []
        saver = DebouncedSaver(lambda: flushes.append("x"), scheduler, delay_ms=100)
        saver.request()
        saver.flush_now()
        scheduler.advance(1000)
        assert flushes == ["x"]

    def test_request_during_flush_is_rescheduled(self, scheduler):
        """A request that arrives while flushing starts a new cycle afterwards."""
        from sessiontree.sessions.saver import DebouncedSaver

        flushes = []

        def flush():
            flushes.append(scheduler.now)
            if len(flushes) == 1:
                saver.request()

        saver = DebouncedSaver(flush, scheduler, delay_ms=100)
        saver.request()
        scheduler.advance(100)
        assert flushes == [100]
        assert saver.pending
        scheduler.advance(100)
        assert flushes == [100, 200]
        assert not saver.pending

    def test_cancel(self, scheduler):
        """A cancelled request never flushes."""
        from sessiontree.sessions.saver import DebouncedSaver

        flushes = []
        saver = DebouncedSaver(lambda: flushes.append(1), scheduler, delay_ms=100)
        saver.request()
        saver.cancel()
        scheduler.advance(500)
        assert flushes == []


class TestGLibScheduler:
    """Tests for the GLib timer adapter, with GLib mocked."""

    def test_call_later_and_cancel(self, monkeypatch):
        """Timers go through GLib.timeout_add and GLib.source_remove."""
        from unittest.mock import MagicMock

        from sessiontree.utils import scheduler as scheduler_module

        glib = MagicMock()
        glib.timeout_add.return_value = 42
        monkeypatch.setattr(scheduler_module, "GLib", glib)

        fired = []
        glib_scheduler = scheduler_module.GLibScheduler()
        handle = glib_scheduler.call_later(250, lambda: fired.append(True))
        assert glib_scheduler.pending() == 1
        delay, callback = glib.timeout_add.call_args[0]
        assert delay == 250

        assert callback() is False
        assert fired == [True]
        assert glib_scheduler.pending() == 0

        handle = glib_scheduler.call_later(250, lambda: None)
        glib_scheduler.cancel(handle)
        glib.source_remove.assert_called_once_with(42)
        assert glib_scheduler.pending() == 0

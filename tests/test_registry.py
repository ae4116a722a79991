# tests/test_registry.py
"""
Tests for the source registry and the change notifier.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class TestSourceRegistry:
    """Tests for SourceRegistry."""

    def test_first_registration_wins(self):
        """A second instance with the same id is circular, the first is not."""
        from sessiontree.sessions.registry import SourceRegistry
        from sessiontree.sessions.sources import FileSource

        registry = SourceRegistry()
        first = FileSource("a", "a.json", source_id="same")
        second = FileSource("b", "b.json", source_id="same")

        assert registry.register(first)
        assert not registry.register(second)
        assert registry.get("same") is first
        assert not registry.is_circular(first)
        assert registry.is_circular(second)
        assert len(registry) == 1 and "same" in registry

    def test_sources_without_id_are_ignored(self):
        """Registering or unregistering a source without an id is a no-op."""
        from sessiontree.sessions.registry import SourceRegistry
        from sessiontree.sessions.sources import FileSource

        registry = SourceRegistry()
        unloaded = FileSource("a", "a.json")
        assert not registry.register(unloaded)
        assert not registry.unregister(unloaded)
        assert not registry.is_circular(unloaded)
        assert len(registry) == 0

    def test_unregister_only_removes_same_instance(self):
        """Unregistering a duplicate keeps the live source registered."""
        from sessiontree.sessions.registry import SourceRegistry
        from sessiontree.sessions.sources import FileSource

        registry = SourceRegistry()
        live = FileSource("a", "a.json", source_id="x")
        duplicate = FileSource("b", "a.json", source_id="x")
        registry.register(live)

        assert not registry.unregister(duplicate)
        assert registry.get("x") is live
        assert registry.unregister(live)
        assert registry.get("x") is None


class TestChangeNotifier:
    """Tests for ChangeNotifier on its own."""

    def test_subscribe_is_idempotent(self):
        """The same handler is only called once."""
        from sessiontree.sessions.notifier import ChangeNotifier, ChangeType

        notifier = ChangeNotifier("f")
        calls = []

        def handler(kind, node):
            calls.append(kind)

        notifier.subscribe(handler)
        notifier.subscribe(handler)
        notifier.notify(ChangeType.ADDED, object())
        assert calls == [ChangeType.ADDED]

    def test_unsubscribe_during_dispatch(self):
        """Handlers removed mid-dispatch still complete the current event."""
        from sessiontree.sessions.notifier import ChangeNotifier, ChangeType

        notifier = ChangeNotifier("f")
        calls = []

        def first(kind, node):
            calls.append("first")
            notifier.unsubscribe(second)

        def second(kind, node):
            calls.append("second")

        notifier.subscribe(first)
        notifier.subscribe(second)
        notifier.notify(ChangeType.ADDED, object())
        notifier.notify(ChangeType.REMOVED, object())

        assert calls == ["first", "second", "first"]
        assert not notifier.dispatching

# tests/test_search.py
"""
Tests for name filtering of the session tree.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


def build_tree():
    from sessiontree.sessions.models import SessionFolder, SessionItem

    root = SessionFolder("Sessions")
    prod = root.add_child(SessionFolder("Servers"))
    prod.add_child(SessionItem("Production-DB", host="db"))
    prod.add_child(SessionItem("cache", host="c"))
    deep = root.add_child(SessionFolder("Lab")).add_child(SessionFolder("Rack 3"))
    deep.add_child(SessionItem("PROD-edge", host="e"))
    root.add_child(SessionItem("staging", host="s"))
    return root


class TestSearchFilter:
    """Tests for SearchFilter.matches."""

    def test_case_insensitive(self):
        """Case insensitive matching folds both sides."""
        from sessiontree.sessions.models import SessionItem
        from sessiontree.sessions.search import SearchFilter, SearchMode

        search = SearchFilter(SearchMode.CASE_INSENSITIVE, "prod")
        assert search.matches(SessionItem("Production-DB"))
        assert not search.matches(SessionItem("staging"))
        assert SearchFilter(SearchMode.CASE_INSENSITIVE, "STRASSE").matches(SessionItem("straße"))

    def test_case_sensitive(self):
        """Case sensitive matching is a plain substring test."""
        from sessiontree.sessions.models import SessionItem
        from sessiontree.sessions.search import SearchFilter, SearchMode

        search = SearchFilter(SearchMode.CASE_SENSITIVE, "Prod")
        assert search.matches(SessionItem("Production-DB"))
        assert not search.matches(SessionItem("PROD-edge"))

    def test_regex(self):
        """Regex mode searches anywhere in the name."""
        from sessiontree.sessions.models import SessionItem
        from sessiontree.sessions.search import SearchFilter, SearchMode

        search = SearchFilter(SearchMode.REGEX, r"-(DB|edge)$")
        assert search.matches(SessionItem("Production-DB"))
        assert not search.matches(SessionItem("cache"))

    def test_invalid_regex_matches_everything(self):
        """A pattern that does not compile hides nothing."""
        from sessiontree.sessions.models import SessionItem
        from sessiontree.sessions.search import SearchFilter, SearchMode

        search = SearchFilter(SearchMode.REGEX, "[unclosed")
        assert search.pattern_error
        assert search.matches(SessionItem("anything"))

    def test_empty_text(self):
        """An empty filter matches everything."""
        from sessiontree.sessions.models import SessionItem
        from sessiontree.sessions.search import SearchFilter

        search = SearchFilter(text="")
        assert search.is_empty
        assert search.matches(SessionItem("x"))

    def test_from_settings_falls_back(self):
        """An unknown configured mode falls back to case insensitive."""
        from unittest.mock import MagicMock

        from sessiontree.sessions.search import SearchFilter, SearchMode

        settings = MagicMock()
        settings.get.return_value = "fuzzy"
        assert SearchFilter.from_settings(settings, "x").mode == SearchMode.CASE_INSENSITIVE


class TestVisibility:
    """Tests for is_visible and visible_nodes."""

    def test_folders_with_matching_descendants_stay_visible(self):
        """Folders are shown when anything below them matches."""
        from sessiontree.sessions.search import SearchFilter, SearchMode, is_visible, visible_nodes

        root = build_tree()
        search = SearchFilter(SearchMode.CASE_INSENSITIVE, "prod")
        names = [n.name for n in visible_nodes(root, search)]
        assert names == ["Servers", "Production-DB", "Lab", "Rack 3", "PROD-edge"]
        assert is_visible(root.get_by_name("Lab"), search)
        assert not is_visible(root.get_by_name("staging"), search)

    def test_matching_folder_without_matching_children(self):
        """A matching folder is shown even if none of its children match."""
        from sessiontree.sessions.search import SearchFilter, SearchMode, visible_nodes

        root = build_tree()
        names = [n.name for n in visible_nodes(root, SearchFilter(SearchMode.CASE_SENSITIVE, "Rack"))]
        assert names == ["Lab", "Rack 3"]

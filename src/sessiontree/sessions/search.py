# sessiontree/sessions/search.py

import re
from enum import Enum
from typing import List, Optional, Pattern

from ..utils.logger import get_logger
from .models import SessionFolder, SessionNode


class SearchMode(Enum):
    CASE_SENSITIVE = "case_sensitive"
    CASE_INSENSITIVE = "case_insensitive"
    REGEX = "regex"


class SearchFilter:
    """Matches tree nodes by name.

    An empty search text matches everything. A pattern that fails to
    compile in REGEX mode is logged and the filter matches everything.
    """

    def __init__(self, mode: SearchMode = SearchMode.CASE_INSENSITIVE, text: str = ""):
        self.logger = get_logger("sessiontree.sessions.search")
        self.mode = SearchMode(mode)
        self.text = text or ""
        self._folded = self.text.casefold()
        self._pattern: Optional[Pattern[str]] = None
        self.pattern_error: Optional[str] = None

        if self.mode == SearchMode.REGEX and self.text:
            try:
                self._pattern = re.compile(self.text)
            except re.error as e:
                self.pattern_error = str(e)
                self.logger.error(f"Invalid search pattern '{self.text}': {e}")

    @classmethod
    def from_settings(cls, settings_manager, text: str = "") -> "SearchFilter":
        mode = settings_manager.get("search_mode", SearchMode.CASE_INSENSITIVE.value)
        try:
            return cls(SearchMode(mode), text)
        except ValueError:
            get_logger("sessiontree.sessions.search").warning(
                f"Unknown search mode '{mode}', using case insensitive search"
            )
            return cls(SearchMode.CASE_INSENSITIVE, text)

    @property
    def is_empty(self) -> bool:
        return not self.text

    def matches(self, node: SessionNode) -> bool:
        if not self.text:
            return True
        name = node.name
        if self.mode == SearchMode.CASE_SENSITIVE:
            return self.text in name
        if self.mode == SearchMode.CASE_INSENSITIVE:
            return self._folded in name.casefold()
        if self._pattern is None:
            return True
        return self._pattern.search(name) is not None


def is_visible(node: SessionNode, search_filter: SearchFilter) -> bool:
    """A leaf is visible when it matches; a folder when it or any descendant does."""
    if search_filter.matches(node):
        return True
    if isinstance(node, SessionFolder):
        return any(is_visible(child, search_filter) for child in node)
    return False


def visible_nodes(folder: SessionFolder, search_filter: SearchFilter) -> List[SessionNode]:
    """Visible descendants of ``folder`` in pre-order."""
    nodes = []
    for child in folder:
        if isinstance(child, SessionFolder):
            below = visible_nodes(child, search_filter)
            if below or search_filter.matches(child):
                nodes.append(child)
                nodes.extend(below)
        elif search_filter.matches(child):
            nodes.append(child)
    return nodes

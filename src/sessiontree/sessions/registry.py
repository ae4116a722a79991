# sessiontree/sessions/registry.py

from typing import Dict, Iterator, Optional

from ..utils.logger import get_logger


class SourceRegistry:
    """Maps source ids to the source instance currently live in a tree.

    A second instance carrying an id that is already registered is a
    circular (or duplicated) composition and must not be loaded.
    """

    def __init__(self):
        self.logger = get_logger("sessiontree.sessions.registry")
        self._sources: Dict[str, object] = {}

    def register(self, source) -> bool:
        """Register ``source``; the first instance for an id wins."""
        source_id = getattr(source, "source_id", None)
        if not source_id:
            return False
        existing = self._sources.get(source_id)
        if existing is not None:
            return existing is source
        self._sources[source_id] = source
        self.logger.debug(f"Registered source '{source.name}' ({source_id})")
        return True

    def unregister(self, source) -> bool:
        source_id = getattr(source, "source_id", None)
        if not source_id or self._sources.get(source_id) is not source:
            return False
        del self._sources[source_id]
        self.logger.debug(f"Unregistered source '{source.name}' ({source_id})")
        return True

    def is_circular(self, source) -> bool:
        source_id = getattr(source, "source_id", None)
        if not source_id:
            return False
        existing = self._sources.get(source_id)
        return existing is not None and existing is not source

    def get(self, source_id: str) -> Optional[object]:
        return self._sources.get(source_id)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[object]:
        return iter(list(self._sources.values()))

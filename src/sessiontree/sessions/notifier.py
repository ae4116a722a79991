# sessiontree/sessions/notifier.py

from enum import Enum
from typing import Callable, List

from ..utils.logger import get_logger


class ChangeType(Enum):
    ADDED = "added"
    REMOVED = "removed"


ChangeHandler = Callable[[ChangeType, object], None]


class ChangeNotifier:
    """Per-folder subscriber list for structural change events.

    Handlers run synchronously, in subscription order, on the thread that
    performed the mutation. A failing handler is logged and the remaining
    handlers still run.
    """

    def __init__(self, owner_name: str = ""):
        self.logger = get_logger("sessiontree.sessions.notifier")
        self.owner_name = owner_name
        self._handlers: List[ChangeHandler] = []
        self._dispatch_depth = 0

    @property
    def dispatching(self) -> bool:
        return self._dispatch_depth > 0

    def subscribe(self, handler: ChangeHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)

    def notify(self, change_type: ChangeType, node) -> None:
        # Handlers may (un)subscribe while we iterate.
        handlers = list(self._handlers)
        self._dispatch_depth += 1
        try:
            for handler in handlers:
                try:
                    handler(change_type, node)
                except Exception as e:
                    self.logger.error(
                        f"Change handler failed for {change_type.value} "
                        f"'{getattr(node, 'name', node)}' in '{self.owner_name}': {e}"
                    )
        finally:
            self._dispatch_depth -= 1

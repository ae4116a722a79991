# sessiontree/sessions/saver.py

from typing import Callable, Optional

from ..settings.config import StoreConstants
from ..utils.logger import get_logger


class DebouncedSaver:
    """Coalesces bursts of save requests into one flush.

    Every ``request()`` restarts an idle timer of ``delay_ms``; when it
    expires ``flush`` runs once on the scheduler's thread. A request that
    arrives while a flush is running is remembered and starts a new timer
    once that flush returns.
    """

    def __init__(
        self,
        flush: Callable[[], None],
        scheduler,
        delay_ms: int = StoreConstants.DEFAULT_SAVE_DELAY_MS,
        name: str = "",
    ):
        self.logger = get_logger("sessiontree.sessions.saver")
        self._flush = flush
        self._scheduler = scheduler
        self.delay_ms = delay_ms
        self.name = name
        self._timer: Optional[int] = None
        self._flushing = False
        self._redo = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def flushing(self) -> bool:
        return self._flushing

    def request(self) -> None:
        if self._flushing:
            self._redo = True
            return
        if self._timer is not None:
            self._scheduler.cancel(self._timer)
        self._timer = self._scheduler.call_later(self.delay_ms, self._on_timeout)

    def _on_timeout(self) -> None:
        self._timer = None
        self.logger.debug(f"Save delay elapsed for '{self.name}'")
        self.flush_now()

    def flush_now(self) -> None:
        """Run the flush immediately, dropping any pending timer."""
        if self._flushing:
            self._redo = True
            return
        self.cancel()
        self._flushing = True
        self._redo = False
        try:
            self._flush()
        finally:
            self._flushing = False
        if self._redo:
            self._redo = False
            self.request()

    def cancel(self) -> None:
        if self._timer is not None:
            self._scheduler.cancel(self._timer)
            self._timer = None

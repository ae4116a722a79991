# sessiontree/sessions/sources.py

import uuid
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..settings.config import StoreConstants
from ..utils.exceptions import (
    CircularSourceError,
    InvalidPathError,
    SessionTreeError,
    StorageCorruptedError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from ..utils.logger import log_error_with_context, log_session_event
from ..utils.ssh_config_parser import SSHConfigHost, SSHConfigParser
from .models import ConnectionProtocol, SessionFolder, SessionItem
from .notifier import ChangeType
from .saver import DebouncedSaver


def new_source_id() -> str:
    return str(uuid.uuid4())


class SessionSource(SessionFolder):
    """A folder whose contents live in an external medium.

    Context shared by a whole tree (registry, scheduler, storage, save
    delay, error handler) is configured on the root and looked up through
    the parent chain.
    """

    is_source = True
    SOURCE_TYPE = "source"
    read_only = False

    def __init__(self, name: str, location: str, source_id: Optional[str] = None):
        super().__init__(name)
        self.location = str(location)
        self.source_id = source_id
        self.save_blocked = False
        self._dirty = False
        self._loading = False
        self._saver: Optional[DebouncedSaver] = None
        self._loaded_listeners: List[Callable[["SessionSource"], None]] = []

        self._registry = None
        self._scheduler = None
        self._storage = None
        self._save_delay_ms: Optional[int] = None
        self._error_handler: Optional[Callable[["SessionSource", Exception], None]] = None

    @classmethod
    def create(cls, name: str, location: str) -> "SessionSource":
        """A new user-created source, with a fresh source id."""
        return cls(name, location, source_id=new_source_id())

    def configure(
        self,
        registry=None,
        scheduler=None,
        storage=None,
        save_delay_ms: Optional[int] = None,
        error_handler: Optional[Callable[["SessionSource", Exception], None]] = None,
    ) -> None:
        if registry is not None:
            self._registry = registry
        if scheduler is not None:
            self._scheduler = scheduler
        if storage is not None:
            self._storage = storage
        if save_delay_ms is not None:
            self._save_delay_ms = save_delay_ms
            if self._saver is not None:
                self._saver.delay_ms = save_delay_ms
        if error_handler is not None:
            self._error_handler = error_handler

    def _inherited(self, attribute: str) -> Any:
        current = self
        while current is not None:
            value = getattr(current, attribute, None)
            if value is not None:
                return value
            current = current.parent
        return None

    @property
    def registry(self):
        return self.find_registry()

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def in_tree(self) -> bool:
        """True once this source belongs to a configured store tree."""
        return self._inherited("_scheduler") is not None or self._inherited("_storage") is not None

    @property
    def save_pending(self) -> bool:
        return self._saver is not None and self._saver.pending

    # --- Loaded listeners ------------------------------------------------

    def add_loaded_listener(self, listener: Callable[["SessionSource"], None]):
        if listener not in self._loaded_listeners:
            self._loaded_listeners.append(listener)

    def remove_loaded_listener(self, listener: Callable[["SessionSource"], None]):
        if listener in self._loaded_listeners:
            self._loaded_listeners.remove(listener)

    def _fire_loaded(self):
        for listener in list(self._loaded_listeners):
            try:
                listener(self)
            except Exception as e:
                self.logger.error(f"Loaded listener failed for source '{self.name}': {e}")

    def _report_error(self, error: Exception):
        handler = self._inherited("_error_handler")
        if handler is None:
            return
        try:
            handler(self, error)
        except Exception as e:
            self.logger.error(f"Error handler failed for source '{self.name}': {e}")

    # --- Persistence -----------------------------------------------------

    def _get_saver(self) -> Optional[DebouncedSaver]:
        if self._saver is None:
            scheduler = self._inherited("_scheduler")
            if scheduler is None:
                return None
            delay_ms = self._inherited("_save_delay_ms") or StoreConstants.DEFAULT_SAVE_DELAY_MS
            self._saver = DebouncedSaver(self._write_if_dirty, scheduler, delay_ms, self.name)
        return self._saver

    def mark_dirty(self) -> None:
        if self._loading or self.read_only or not self.in_tree:
            return
        self._dirty = True
        self.save()

    def save(self) -> None:
        """Schedule a write once the tree has been idle for the save delay."""
        saver = self._get_saver()
        if saver is None:
            self._write_if_dirty()
        else:
            saver.request()

    def flush(self) -> bool:
        """Write pending changes now. Returns True when nothing is left unsaved."""
        if self._saver is not None:
            self._saver.flush_now()
        else:
            self._write_if_dirty()
        return not self._dirty

    def cancel_pending_save(self) -> None:
        if self._saver is not None:
            self._saver.cancel()

    def unblock_saves(self) -> None:
        """Allow saving again after a failed load."""
        if self.save_blocked:
            self.logger.info(f"Saves re-enabled for source '{self.name}'")
        self.save_blocked = False
        if self._dirty:
            self.save()

    def _write_if_dirty(self) -> None:
        if not self._dirty or self.read_only:
            return
        if self.save_blocked:
            self.logger.warning(
                f"Not saving '{self.name}': its file could not be read and saving is blocked"
            )
            return
        try:
            self._write()
        except StorageWriteError as e:
            log_error_with_context(e, f"saving source '{self.name}'", "sessiontree.sessions.sources")
            self._report_error(e)
            # Stay dirty and try again on the next cycle.
            if self._saver is not None:
                self._saver.request()
            return
        self._dirty = False

    def _write(self) -> None:
        raise NotImplementedError

    def load(self) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        self.cancel_pending_save()

    # --- Loading helpers -------------------------------------------------

    def _detach_as_circular(self) -> None:
        error = CircularSourceError(self.name, str(self.source_id), self.location)
        self.logger.warning(f"Removed '{self.name}' due to circular reference: {error.message}")
        parent = self.parent
        if parent is not None:
            parent._detach(self)
            parent._mark_modified()
            parent.notifier.notify(ChangeType.REMOVED, self)

    def _replace_children(self, entries) -> None:
        for child in self.children:
            self._detach(child)
            self.notifier.notify(ChangeType.REMOVED, child)
            child.dispose()
        for child_id, node in entries:
            self._restore_child(node, child_id)

    def _load_embedded_sources(self) -> None:
        embedded = [
            node
            for node in self.flatten()
            if node.is_source and node.parent.get_source_node() is self
        ]
        for source in embedded:
            if source.parent is None:
                continue  # detached by an earlier sibling's load
            try:
                source.load()
            except StorageError as e:
                log_error_with_context(
                    e, f"loading source '{source.name}'", "sessiontree.sessions.sources"
                )
                source._report_error(e)

    def _adopt_source_id(self, source_id: Optional[str]) -> None:
        if not source_id or source_id == self.source_id:
            return
        registry = self.registry
        if registry is not None:
            registry.unregister(self)
        self.source_id = source_id

    def clone(self) -> "SessionSource":
        # The copy links the same medium, so it keeps the medium's id.
        return type(self)(self.name, self.location, source_id=self.source_id)

    def deep_clone(self) -> "SessionSource":
        return self.clone()


class FileSource(SessionSource):
    """A source stored in a JSON document on disk."""

    SOURCE_TYPE = "file_source"

    def _storage_manager(self):
        storage = self._inherited("_storage")
        if storage is None:
            from .storage import SessionStorageManager

            storage = self._storage = SessionStorageManager()
        return storage

    def load(self) -> bool:
        """(Re)read the file and replace this folder's children.

        Returns False if the file turned out to be a source that is already
        in the tree; the source has then been removed from its parent.
        """
        storage = self._storage_manager()
        try:
            document = storage.load(self.location)
        except StorageCorruptedError:
            self.save_blocked = True
            self.logger.error(
                f"Sessions file for '{self.name}' is corrupted; saving is blocked "
                "until it is repaired or restored"
            )
            raise

        if document is not None:
            self._adopt_source_id(document.source_id)
        registry = self.registry
        if registry is not None and registry.is_circular(self):
            self._detach_as_circular()
            return False

        self._loading = True
        try:
            self._replace_children(document.entries if document is not None else [])
            if document is not None:
                self._restore_increment(document.increment)
            if not self.source_id:
                self.source_id = new_source_id()
            if registry is not None:
                registry.register(self)
            self._load_embedded_sources()
        finally:
            self._loading = False

        self._dirty = False
        self.save_blocked = False
        log_session_event("folder_loaded", self.name, f"{self.get_count()} items from {self.location}")
        self._fire_loaded()
        return True

    def _write(self) -> None:
        self.logger.info(f"Saving {self.location}")
        self._storage_manager().save(self, self.location, self.source_id)


class SessionRoot(FileSource):
    """Top of a session tree; owns the tree's registry and save context."""

    SOURCE_TYPE = "root"

    def __init__(
        self,
        location: str,
        name: str = StoreConstants.ROOT_NAME,
        source_id: Optional[str] = None,
    ):
        super().__init__(name, location, source_id or new_source_id())

    def clone(self) -> "SessionFolder":
        # A root copied into another tree becomes a plain folder.
        return SessionFolder(self.name)

    deep_clone = SessionFolder.deep_clone


class SshConfigSource(SessionSource):
    """Read-only source listing the host aliases of an OpenSSH config file."""

    SOURCE_TYPE = "ssh_config_source"
    read_only = True

    def _medium_id(self) -> str:
        return f"ssh-config:{Path(self.location).expanduser().resolve()}"

    def _session_for(self, host: SSHConfigHost) -> Optional[SessionItem]:
        extra_args = []
        if host.identity_file:
            extra_args.append(f"-i {host.identity_file}")
        if host.proxy_jump:
            extra_args.append(f"-J {host.proxy_jump}")
        try:
            return SessionItem(
                host.alias,
                host=host.target,
                port=host.port or StoreConstants.DEFAULT_SSH_PORT,
                protocol=ConnectionProtocol.SSH,
                username=host.user or "",
                extra_args=" ".join(extra_args),
            )
        except (InvalidPathError, SessionTreeError) as e:
            self.logger.warning(f"Skipping ssh config host '{host.alias}': {e}")
            return None

    def load(self) -> bool:
        path = Path(self.location).expanduser()
        hosts: List[SSHConfigHost] = []
        if path.exists():
            try:
                hosts = SSHConfigParser().parse(path)
            except OSError as e:
                raise StorageReadError(str(path), str(e)) from e
        else:
            self.logger.warning(f"SSH config file doesn't exist: {path}")

        self._adopt_source_id(self._medium_id())
        registry = self.registry
        if registry is not None and registry.is_circular(self):
            self._detach_as_circular()
            return False

        entries = []
        for host in hosts:
            session = self._session_for(host)
            if session is not None:
                entries.append((None, session))

        self._loading = True
        try:
            self._replace_children(entries)
            if registry is not None:
                registry.register(self)
        finally:
            self._loading = False

        self.logger.info(f"Loaded {len(entries)} hosts from {path}")
        self._fire_loaded()
        return True

    def _write(self) -> None:
        pass

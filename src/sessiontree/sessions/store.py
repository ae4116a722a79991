# sessiontree/sessions/store.py

from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Union

from ..helpers import generate_unique_name
from ..settings.config import StoreConstants, get_config_paths
from ..settings.manager import SettingsManager
from ..utils.exceptions import InvalidPathError, StorageError
from ..utils.logger import get_logger, log_error_with_context
from .models import SessionFolder, SessionNode, sources_in
from .notifier import ChangeHandler
from .operations import SessionOperations
from .paths import decode_names
from .registry import SourceRegistry
from .search import SearchFilter, SearchMode, visible_nodes
from .sources import FileSource, SessionRoot, SessionSource, SshConfigSource
from .storage import SessionStorageManager

ErrorListener = Callable[[SessionSource, Exception], None]

SOURCE_KINDS = {
    "file": FileSource,
    "ssh_config": SshConfigSource,
}


class SessionStore:
    """Owns one session tree: its root file, registry, persistence and settings."""

    def __init__(
        self,
        sessions_file: Optional[Union[str, Path]] = None,
        settings_manager: Optional[SettingsManager] = None,
        scheduler=None,
        storage: Optional[SessionStorageManager] = None,
    ):
        self.logger = get_logger("sessiontree.sessions.store")
        self.settings_manager = settings_manager or SettingsManager()
        if scheduler is None:
            from ..utils.scheduler import GLibScheduler

            scheduler = GLibScheduler()
        self.scheduler = scheduler
        self.storage = storage or SessionStorageManager(self.settings_manager.get("backup_count"))
        self.registry = SourceRegistry()

        location = Path(sessions_file) if sessions_file else self.settings_manager.get_sessions_file()
        self.root = SessionRoot(str(location), name=self.settings_manager.get("root_name"))
        self.root.configure(
            registry=self.registry,
            scheduler=self.scheduler,
            storage=self.storage,
            save_delay_ms=self.settings_manager.get("save_delay_ms"),
            error_handler=self._on_source_error,
        )
        self.operations = SessionOperations(self)

        self.errors: List[Tuple[SessionSource, Exception]] = []
        self._error_listeners: List[ErrorListener] = []
        self.settings_manager.add_change_listener(self._on_setting_changed)
        self.logger.info(f"Session store created for {location}")

    # --- Loading ---------------------------------------------------------

    def load(self) -> bool:
        """Load the root file and every source it links to.

        Raises StorageCorruptedError or StorageReadError when the root file
        itself cannot be read; the tree is then left as it was.
        """
        try:
            loaded = self.root.load()
        except StorageError as e:
            log_error_with_context(e, "loading sessions", "sessiontree.sessions.store")
            self._on_source_error(self.root, e)
            raise
        if self.settings_manager.get("ssh_config_source", False):
            self.ensure_ssh_config_source()
        self.logger.info(f"Loaded {self.root.get_count()} items from {self.root.location}")
        return loaded

    def load_sources_in(self, node: SessionNode) -> None:
        """Load every source in a subtree that was just added to the tree."""
        for source in sources_in(node):
            if source.parent is not None and source.get_root() is self.root:
                source.load()

    def restore_from_backup(self) -> bool:
        """Replace the root file with its newest backup and reload it."""
        self.root.cancel_pending_save()
        backup = self.storage.restore_latest_backup(self.root.location)
        if backup is None:
            return False
        self.root.unblock_saves()
        self.root.load()
        self.logger.info(f"Sessions restored from {backup.name}")
        return True

    # --- Subscriptions and errors ----------------------------------------

    def subscribe(self, handler: ChangeHandler, folder: Optional[SessionFolder] = None) -> None:
        (folder or self.root).subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler, folder: Optional[SessionFolder] = None) -> None:
        (folder or self.root).unsubscribe(handler)

    def add_error_listener(self, listener: ErrorListener) -> None:
        if listener not in self._error_listeners:
            self._error_listeners.append(listener)

    def remove_error_listener(self, listener: ErrorListener) -> None:
        if listener in self._error_listeners:
            self._error_listeners.remove(listener)

    def clear_errors(self) -> None:
        self.errors.clear()

    def _on_source_error(self, source: SessionSource, error: Exception) -> None:
        self.errors.append((source, error))
        for listener in list(self._error_listeners):
            try:
                listener(source, error)
            except Exception as e:
                self.logger.error(f"Error listener failed: {e}")

    # --- Tree changes ----------------------------------------------------

    def add_source(
        self, parent: SessionFolder, name: str, location: str, kind: str = "file"
    ) -> Optional[SessionSource]:
        """Link a new source under ``parent`` and load it.

        Returns None when the medium is already part of the tree.
        """
        source_cls = SOURCE_KINDS.get(kind)
        if source_cls is None:
            raise ValueError(f"Unknown source kind: {kind!r}")
        source = parent.add_child(source_cls.create(name, location))
        try:
            loaded = source.load()
        except StorageError as e:
            log_error_with_context(e, f"loading source '{name}'", "sessiontree.sessions.store")
            self._on_source_error(source, e)
            raise
        return source if loaded else None

    def ensure_ssh_config_source(self) -> Optional[SessionSource]:
        for child in self.root:
            if isinstance(child, SshConfigSource):
                return child
        location = str(get_config_paths().SSH_CONFIG_FILE)
        name = generate_unique_name("SSH Config", (child.name for child in self.root))
        return self.add_source(self.root, name, location, kind="ssh_config")

    def import_tree(self, subtree: SessionNode) -> SessionNode:
        """Graft a detached subtree under the root and save right away."""
        subtree.name = generate_unique_name(subtree.name, (child.name for child in self.root))
        self.root.add_child(subtree)
        self.load_sources_in(subtree)
        self.root.flush()
        self.logger.info(f"Imported '{subtree.name}' with {self._count(subtree)} items")
        return subtree

    def import_file(self, path: Union[str, Path]) -> Optional[SessionFolder]:
        """Import the children of another sessions file under an "Imported" folder."""
        document = self.storage.load(path)
        if document is None:
            self.logger.warning(f"Nothing to import from {path}")
            return None
        folder = SessionFolder(StoreConstants.IMPORTED_FOLDER_NAME)
        for _child_id, node in document.entries:
            folder.add_child(node)
        return self.import_tree(folder)

    @staticmethod
    def _count(node: SessionNode) -> int:
        return node.get_count() if isinstance(node, SessionFolder) else 1

    # --- Lookup ----------------------------------------------------------

    def find_by_name_path(self, path: str) -> Optional[SessionNode]:
        """Resolve a name path as returned by ``get_names_string()``."""
        try:
            names = decode_names(path)
        except InvalidPathError as e:
            self.logger.debug(f"Ignoring malformed name path: {e}")
            return None
        if names[0] != self.root.name:
            return None
        if len(names) == 1:
            return self.root
        return self.root.get_by_name_path(names[1:])

    def find_by_id_path(self, path: str) -> Optional[SessionNode]:
        return self.root.get_by_id_path_string(path)

    def filter(self, text: str, mode: Optional[SearchMode] = None) -> List[SessionNode]:
        if mode is None:
            search_filter = SearchFilter.from_settings(self.settings_manager, text)
        else:
            search_filter = SearchFilter(mode, text)
        return visible_nodes(self.root, search_filter)

    # --- Persistence -----------------------------------------------------

    def sources(self) -> List[SessionSource]:
        return sources_in(self.root)

    def flush(self) -> bool:
        """Write every dirty source now. Returns True when all were saved."""
        saved = True
        for source in self.sources():
            if not source.flush():
                saved = False
        return saved

    def close(self) -> None:
        self.flush()
        for source in self.sources():
            source.close()
        self.settings_manager.remove_change_listener(self._on_setting_changed)
        self.logger.info("Session store closed")

    def _on_setting_changed(self, key: str, old_value: Any, new_value: Any) -> None:
        if key == "save_delay_ms":
            for source in self.sources():
                source.configure(save_delay_ms=new_value)
        elif key == "backup_count":
            self.storage.backup_count = new_value
        elif key == "ssh_config_source" and new_value:
            try:
                self.ensure_ssh_config_source()
            except StorageError as e:
                self.logger.error(f"Could not add ssh config source: {e}")

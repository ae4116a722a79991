# sessiontree/sessions/operations.py

import threading
from typing import Any

from ..helpers import generate_unique_name
from ..utils.exceptions import SessionTreeError, StorageError
from ..utils.logger import get_logger, log_session_event
from ..utils.translation_utils import _
from .models import SessionFolder, SessionItem, SessionNode, sources_in
from .results import OperationResult


class SessionOperations:
    """User-initiated create, rename, copy, move and delete on a store's tree.

    Saving is left to the sources' debounced savers.
    """

    def __init__(self, store):
        self.logger = get_logger("sessiontree.sessions.operations")
        self.store = store
        self._operation_lock = threading.RLock()

    def _failure(self, action: str, error: SessionTreeError) -> OperationResult:
        self.logger.warning(f"{action} failed: {error.message}")
        return OperationResult(False, error.user_message)

    def create_session(self, parent: SessionFolder, name: str, **attributes: Any) -> OperationResult:
        with self._operation_lock:
            try:
                session = SessionItem(name, **attributes)
                if not session.validate():
                    return OperationResult(False, session.get_validation_errors()[0], session)
                parent.add_child(session)
            except SessionTreeError as e:
                return self._failure("Create session", e)
            log_session_event("created", session.name, session.get_connection_string())
            return OperationResult(
                True, _("Session '{name}' created successfully.").format(name=session.name), session
            )

    def create_folder(self, parent: SessionFolder, name: str) -> OperationResult:
        with self._operation_lock:
            try:
                folder = parent.add_child(SessionFolder(name))
            except SessionTreeError as e:
                return self._failure("Create folder", e)
            log_session_event("folder_created", folder.name)
            return OperationResult(
                True, _("Folder '{name}' created successfully.").format(name=folder.name), folder
            )

    def rename(self, node: SessionNode, new_name: str) -> OperationResult:
        with self._operation_lock:
            old_name = node.name
            try:
                node.name = new_name
            except SessionTreeError as e:
                return self._failure("Rename", e)
            self.logger.info(f"Renamed '{old_name}' to '{new_name}'")
            return OperationResult(True, _("Renamed to '{name}'.").format(name=new_name), node)

    def duplicate(self, node: SessionNode) -> OperationResult:
        """Copy ``node`` next to itself under a unique name."""
        if node.parent is None:
            return OperationResult(False, _("The root folder cannot be duplicated."))
        return self.copy_to(node, node.parent)

    def copy_to(self, node: SessionNode, target: SessionFolder) -> OperationResult:
        with self._operation_lock:
            copy = node.deep_clone() if isinstance(node, SessionFolder) else node.clone()
            try:
                copy.name = generate_unique_name(node.name, (child.name for child in target))
                target.add_child(copy)
            except SessionTreeError as e:
                return self._failure("Copy", e)
            self._load_new_sources(copy)
            if copy.parent is None:
                # A linked source can only appear once in a tree.
                return OperationResult(
                    False,
                    _("'{name}' is already linked in this tree.").format(name=node.name),
                )
            self.logger.info(f"Copied '{node.name}' to '{target.name}' as '{copy.name}'")
            return OperationResult(True, _("'{name}' copied.").format(name=copy.name), copy)

    def move(self, node: SessionNode, target: SessionFolder) -> OperationResult:
        with self._operation_lock:
            origin = node.parent
            if origin is None:
                return OperationResult(False, _("The root folder cannot be moved."))
            if origin is target:
                return OperationResult(True, _("Item already in target folder."), node)
            if target is node or target.is_descendant_of(node):
                return OperationResult(False, _("Cannot move a folder into itself."))
            if node.name in target:
                return OperationResult(
                    False,
                    _("An item named '{name}' already exists in '{folder}'.").format(
                        name=node.name, folder=target.name
                    ),
                )

            try:
                origin.remove_child(node)
            except SessionTreeError as e:
                return self._failure("Move", e)
            try:
                target.add_child(node)
            except SessionTreeError as e:
                origin.add_child(node)  # Rollback
                return self._failure("Move", e)

            self.logger.info(f"Moved '{node.name}' from '{origin.name}' to '{target.name}'")
            return OperationResult(True, _("'{name}' moved.").format(name=node.name), node)

    def delete(self, node: SessionNode) -> OperationResult:
        with self._operation_lock:
            parent = node.parent
            if parent is None:
                return OperationResult(False, _("The root folder cannot be deleted."))
            sources = sources_in(node)
            for source in sources:
                source.flush()
            try:
                parent.remove_child(node)
            except SessionTreeError as e:
                return self._failure("Delete", e)
            for source in sources:
                source.close()
            node.dispose()
            log_session_event("folder_deleted" if isinstance(node, SessionFolder) else "deleted", node.name)
            return OperationResult(True, _("'{name}' deleted.").format(name=node.name))

    def _load_new_sources(self, node: SessionNode) -> None:
        try:
            self.store.load_sources_in(node)
        except StorageError as e:
            self.logger.error(f"Could not load copied source: {e}")

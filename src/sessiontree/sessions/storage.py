# sessiontree/sessions/storage.py

import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..settings.config import AppConstants, StoreConstants
from ..utils.backup import BackupManager
from ..utils.exceptions import (
    SessionTreeError,
    StorageCorruptedError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from ..utils.logger import get_logger, log_error_with_context
from ..utils.translation_utils import _
from .models import SessionFolder, SessionItem, SessionNode


@dataclass(slots=True)
class LoadedDocument:
    """A parsed store file: root attributes plus detached top-level nodes."""

    name: str
    source_id: Optional[str] = None
    increment: int = 0
    entries: List[Tuple[Optional[int], SessionNode]] = field(default_factory=list)


def _source_types() -> Dict[str, type]:
    from .sources import FileSource, SshConfigSource

    return {
        FileSource.SOURCE_TYPE: FileSource,
        SshConfigSource.SOURCE_TYPE: SshConfigSource,
    }


class SessionStorageManager:
    """Reads and writes session tree documents as JSON files."""

    def __init__(self, backup_count: int = StoreConstants.DEFAULT_BACKUP_COUNT):
        self.logger = get_logger("sessiontree.sessions.storage")
        self._file_lock = threading.RLock()
        self.backup_manager = BackupManager(backup_count)

    @property
    def backup_count(self) -> int:
        return self.backup_manager.max_backups

    @backup_count.setter
    def backup_count(self, value: int):
        self.backup_manager.max_backups = value

    # --- Loading ---------------------------------------------------------

    def load(self, location: Union[str, Path]) -> Optional[LoadedDocument]:
        """Read the document at ``location``.

        Returns None when the file does not exist or is empty.
        """
        path = Path(location).expanduser()
        with self._file_lock:
            if not path.exists():
                self.logger.warning(f"Could not load sessions, file doesn't exist: {path}")
                return None
            try:
                size = path.stat().st_size
            except OSError as e:
                raise StorageReadError(str(path), str(e)) from e
            if size == 0:
                self.logger.info(f"Sessions file is empty: {path}")
                return None
            if size > AppConstants.MAX_STORE_FILE_SIZE:
                raise StorageReadError(str(path), _("File too large (>50MB)"))

            data = self._read_json_file(path)
            document = self.parse_document(data, str(path))
            self.logger.info(f"Loaded {len(document.entries)} top-level items from {path}")
            return document

    def _read_json_file(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"JSON parsing failed: {e}")
            raise StorageCorruptedError(str(path), _("Invalid JSON: {}").format(e)) from e
        except UnicodeDecodeError as e:
            raise StorageCorruptedError(str(path), _("Encoding error: {}").format(e)) from e
        except OSError as e:
            raise StorageReadError(str(path), str(e)) from e

        if not isinstance(data, dict):
            raise StorageCorruptedError(str(path), _("Root data is not a dictionary"))
        return data

    def parse_document(self, data: Dict[str, Any], file_path: str = "") -> LoadedDocument:
        version = data.get("version")
        if not isinstance(version, int) or version > AppConstants.STORAGE_FORMAT_VERSION:
            raise StorageCorruptedError(
                file_path, _("Unsupported format version: {}").format(version)
            )
        root = data.get("root")
        if not isinstance(root, dict) or root.get("type") != "root":
            raise StorageCorruptedError(file_path, _("Missing root folder"))

        try:
            source_id = root.get("source_id")
            if source_id is not None and not isinstance(source_id, str):
                raise TypeError("source_id must be a string")
            document = LoadedDocument(
                name=str(root.get("name") or StoreConstants.ROOT_NAME),
                source_id=source_id or None,
                increment=self._read_increment(root),
            )
            seen = set()
            for entry in self._read_children(root):
                node = self._build_node(entry)
                if node.name in seen:
                    raise ValueError(f"duplicate name '{node.name}'")
                seen.add(node.name)
                document.entries.append((self._read_id(entry), node))
        except (KeyError, TypeError, ValueError, SessionTreeError) as e:
            raise StorageCorruptedError(file_path, str(e)) from e
        return document

    @staticmethod
    def _read_children(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        children = data.get("children", [])
        if not isinstance(children, list) or not all(isinstance(c, dict) for c in children):
            raise TypeError(f"children of '{data.get('name')}' must be a list of objects")
        return children

    @staticmethod
    def _read_id(data: Dict[str, Any]) -> Optional[int]:
        value = data.get("id")
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"invalid id {value!r} for '{data.get('name')}'")
        return value

    @staticmethod
    def _read_increment(data: Dict[str, Any]) -> int:
        value = data.get("increment", 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"invalid increment {value!r} for '{data.get('name')}'")
        return value

    def _build_node(self, data: Dict[str, Any]) -> SessionNode:
        node_type = data.get("type")
        if node_type == "session":
            return SessionItem.from_dict(data)
        if node_type == "folder":
            folder = SessionFolder(data["name"])
            for entry in self._read_children(data):
                folder._restore_child(self._build_node(entry), self._read_id(entry))
            folder._restore_increment(self._read_increment(data))
            return folder

        source_cls = _source_types().get(node_type)
        if source_cls is None:
            raise ValueError(f"unknown node type {node_type!r}")
        location = data.get("location")
        if not isinstance(location, str) or not location:
            raise ValueError(f"source '{data.get('name')}' has no location")
        return source_cls(data["name"], location)

    # --- Saving ----------------------------------------------------------

    def serialize(self, folder: SessionFolder, source_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            "version": AppConstants.STORAGE_FORMAT_VERSION,
            "root": {
                "type": "root",
                "name": folder.name,
                "source_id": source_id,
                "increment": folder.increment,
                "children": [self._serialize_node(child) for child in folder],
            },
        }

    def _serialize_node(self, node: SessionNode) -> Dict[str, Any]:
        if node.is_source:
            # Embedded sources keep their own contents in their own medium.
            return {
                "type": node.SOURCE_TYPE,
                "name": node.name,
                "id": node.id,
                "location": node.location,
            }
        if isinstance(node, SessionFolder):
            return {
                "type": "folder",
                "name": node.name,
                "id": node.id,
                "increment": node.increment,
                "children": [self._serialize_node(child) for child in node],
            }
        data = {"type": "session", "id": node.id}
        data.update(node.to_dict())
        return data

    def save(
        self,
        folder: SessionFolder,
        location: Union[str, Path],
        source_id: Optional[str] = None,
    ) -> None:
        """Back up the current file, then replace it with ``folder``'s contents."""
        path = Path(location).expanduser()
        with self._file_lock:
            try:
                data = self.serialize(folder, source_id)
                path.parent.mkdir(parents=True, exist_ok=True)
                self._backup_existing(path)
                temp_file = path.with_name(path.name + ".tmp")
                self._write_temp_file(temp_file, data)
                self._atomic_replace(temp_file, path)
            except StorageError:
                raise
            except (OSError, TypeError, ValueError) as e:
                log_error_with_context(e, "session tree save", "sessiontree.sessions.storage")
                raise StorageWriteError(str(path), _("Save failed: {}").format(e)) from e
        self.logger.info(f"Saved {folder.get_count()} items to {path}")

    def _backup_existing(self, path: Path) -> None:
        try:
            self.backup_manager.create_backup(path)
        except StorageWriteError as e:
            # The previous file is still intact; carry on with the write.
            self.logger.error(f"Error backing up {path.name}: {e}")

    def _write_temp_file(self, temp_file: Path, data: Dict[str, Any]) -> None:
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
        except (OSError, TypeError, ValueError):
            if temp_file.exists():
                temp_file.unlink()
            raise

    def _atomic_replace(self, temp_file: Path, path: Path) -> None:
        try:
            os.replace(temp_file, path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageWriteError(str(path), _("File write failed: {}").format(e)) from e

    # --- Backups ---------------------------------------------------------

    def list_backups(self, location: Union[str, Path]) -> List[Path]:
        return self.backup_manager.list_backups(Path(location).expanduser())

    def restore_latest_backup(self, location: Union[str, Path]) -> Optional[Path]:
        """Replace ``location`` with its newest backup. Returns the backup used."""
        path = Path(location).expanduser()
        backup = self.backup_manager.latest_backup(path)
        if backup is None:
            self.logger.warning(f"No backup available for {path}")
            return None
        self.backup_manager.restore_backup(backup, path)
        return backup

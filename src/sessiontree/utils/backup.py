# sessiontree/utils/backup.py

import re
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from ..settings.config import StoreConstants
from .exceptions import StorageWriteError
from .logger import get_logger

# Middle part of a backup name, see StoreConstants.BACKUP_TIMESTAMP_FORMAT.
_BACKUP_STAMP_RE = re.compile(r"^\d{8}_\d{6}_\d{6}(_\d+)?$")


class BackupManager:
    """Keeps timestamped copies of a store file beside it.

    Backups are named ``<stem>.<timestamp><suffix>``; the timestamp sorts
    lexically in creation order, so the newest ``max_backups`` names win.
    """

    def __init__(self, max_backups: int = StoreConstants.DEFAULT_BACKUP_COUNT):
        self.logger = get_logger("sessiontree.backup")
        self.max_backups = max_backups
        self._lock = threading.RLock()

    def _backup_name(self, file_path: Path) -> Path:
        timestamp = datetime.now().strftime(StoreConstants.BACKUP_TIMESTAMP_FORMAT)
        candidate = file_path.with_name(f"{file_path.stem}.{timestamp}{file_path.suffix}")
        counter = 1
        while candidate.exists():
            candidate = file_path.with_name(
                f"{file_path.stem}.{timestamp}_{counter}{file_path.suffix}"
            )
            counter += 1
        return candidate

    def list_backups(self, file_path: Union[str, Path]) -> List[Path]:
        """Backups of ``file_path``, newest first."""
        file_path = Path(file_path)
        if not file_path.parent.is_dir():
            return []
        prefix = f"{file_path.stem}."
        backups = []
        for candidate in file_path.parent.glob(f"{file_path.stem}.*{file_path.suffix}"):
            stamp = candidate.name[len(prefix):len(candidate.name) - len(file_path.suffix)]
            if _BACKUP_STAMP_RE.match(stamp) and candidate.is_file():
                backups.append(candidate)
        return sorted(backups, key=lambda p: p.name, reverse=True)

    def latest_backup(self, file_path: Union[str, Path]) -> Optional[Path]:
        backups = self.list_backups(file_path)
        return backups[0] if backups else None

    def create_backup(self, file_path: Union[str, Path]) -> Optional[Path]:
        """Copy ``file_path`` to a new timestamped backup and prune old ones.

        Returns the backup path, or None when there is nothing to back up or
        retention is disabled.
        """
        file_path = Path(file_path)
        with self._lock:
            if self.max_backups <= 0 or not file_path.is_file():
                return None
            backup_path = self._backup_name(file_path)
            try:
                shutil.copy2(file_path, backup_path)
            except OSError as e:
                raise StorageWriteError(str(backup_path), f"Backup failed: {e}") from e
            self.logger.debug(f"Backed up {file_path.name} to {backup_path.name}")
            self.cleanup_old_backups(file_path)
            return backup_path

    def cleanup_old_backups(self, file_path: Union[str, Path]) -> List[Path]:
        """Delete backups beyond the retention count, oldest first."""
        removed = []
        with self._lock:
            for old in self.list_backups(file_path)[max(self.max_backups, 0):]:
                try:
                    old.unlink()
                    removed.append(old)
                    self.logger.info(f"Cleaning up old backup: {old.name}")
                except OSError as e:
                    self.logger.warning(f"Could not remove old backup {old}: {e}")
        return removed

    def restore_backup(self, backup_path: Union[str, Path], target: Union[str, Path]) -> None:
        """Copy a backup over ``target``."""
        backup_path, target = Path(backup_path), Path(target)
        with self._lock:
            try:
                temp_file = target.with_suffix(target.suffix + ".restore")
                shutil.copy2(backup_path, temp_file)
                temp_file.replace(target)
            except OSError as e:
                raise StorageWriteError(str(target), f"Restore failed: {e}") from e
            self.logger.info(f"Restored {target.name} from {backup_path.name}")

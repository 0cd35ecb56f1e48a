"""Sibling ``.bak`` backups for files rewritten in place."""

from __future__ import annotations

import difflib
import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional

from .config import BACKUP_SUFFIX

logger = logging.getLogger(__name__)


class BackupStore:
    """Creates, lists, and restores ``<file>.bak`` copies.

    There is one backup per file; a later mutation overwrites it. Backups
    are never deleted here, restoring copies the backup back over the file.
    """

    def __init__(self, suffix: str = BACKUP_SUFFIX, ignored_dirs: frozenset = frozenset({"node_modules"})):
        self.suffix = suffix
        self.ignored_dirs = ignored_dirs

    def backup_path_for(self, file_path: Path) -> Path:
        return file_path.with_name(file_path.name + self.suffix)

    def create_backup(self, file_path: Path) -> Optional[Path]:
        """Copy ``file_path`` to its backup if it exists.

        Returns:
            The backup path, or None when there was nothing to back up.
        """
        if not file_path.is_file():
            return None
        backup = self.backup_path_for(file_path)
        shutil.copy2(file_path, backup)
        logger.debug("Backed up %s -> %s", file_path, backup)
        return backup

    def restore(self, file_path: Path) -> bool:
        """Copy the backup of ``file_path`` back into place.

        Returns:
            True if a backup existed and was restored, False otherwise
        """
        backup = self.backup_path_for(file_path)
        if not backup.is_file():
            return False
        shutil.copy2(backup, file_path)
        logger.info("Restored %s from %s", file_path, backup.name)
        return True

    def list_backups(self, root: Path) -> List[Path]:
        """All backup files under ``root``, sorted."""
        found = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.ignored_dirs)
            for filename in sorted(filenames):
                if filename.endswith(self.suffix) and len(filename) > len(self.suffix):
                    found.append(Path(dirpath) / filename)
        return found

    def original_path_for(self, backup: Path) -> Path:
        return backup.with_name(backup.name[: -len(self.suffix)])

    def restore_all(self, root: Path) -> List[Path]:
        """Restore every backed-up file under ``root``; returns the restored paths."""
        restored = []
        for backup in self.list_backups(root):
            original = self.original_path_for(backup)
            if self.restore(original):
                restored.append(original)
        return restored

    def create_diff(self, original: str, modified: str, filename: str = "file") -> str:
        """Unified diff between a backup and the current file content."""
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            modified.splitlines(keepends=True),
            fromfile=f"a/{filename}",
            tofile=f"b/{filename}",
        )
        return "".join(diff)

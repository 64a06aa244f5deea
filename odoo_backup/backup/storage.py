"""
Host-side storage for backup artifacts.

Artifacts are plain files directly under the backup root, named
``backup_<database>_<YYYYMMDD_HHMMSS>.<format>``. There is no index: the
directory listing is the source of truth.
"""

import os
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any


class StorageError(OSError):
    """Raised when a host filesystem operation fails."""
    pass


class BackupStorage:
    """
    Handler for the host backup directory.
    """

    def __init__(self, base_path: str):
        """
        Initialize storage handler. The directory is not created here.

        Args:
            base_path: Host backup root
        """
        self.base_path = Path(base_path)

    def ensure_directory(self):
        """
        Create the backup root (and parents) if missing.

        Raises:
            StorageError: If the directory cannot be created
        """
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise StorageError(f"Permission denied creating backup directory {self.base_path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to create backup directory: {e}")

    def exists(self) -> bool:
        return self.base_path.is_dir()

    def list_files(self, database_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List artifact files in the backup root (non-recursive).

        Args:
            database_name: Keep only files whose name contains this substring

        Returns:
            List of dicts with 'name', 'path', 'modified' and 'size' keys,
            in directory order. 'modified' is the mtime as an aware UTC datetime

        Raises:
            StorageError: If enumeration or metadata retrieval fails
        """
        if not self.exists():
            return []

        files = []
        try:
            with os.scandir(self.base_path) as entries:
                for entry in entries:
                    if not entry.is_file():
                        continue
                    # Substring match: 'db' also matches 'db2' files
                    if database_name is not None and database_name not in entry.name:
                        continue

                    stat = entry.stat()
                    files.append({
                        'name': entry.name,
                        'path': entry.path,
                        'modified': datetime.fromtimestamp(stat.st_mtime, timezone.utc),
                        'size': stat.st_size
                    })
        except OSError as e:
            raise StorageError(f"Failed to read backup directory: {e}")

        return files

    def list_artifacts(self, database_name: Optional[str] = None) -> List[str]:
        """
        List artifact filenames, sorted ascending.

        Args:
            database_name: Optional substring filter

        Returns:
            Sorted filenames; empty if the backup root does not exist
        """
        return sorted(f['name'] for f in self.list_files(database_name))

    def delete(self, path: str):
        """
        Delete an artifact file.

        Raises:
            StorageError: If deletion fails
        """
        try:
            os.remove(path)
        except PermissionError as e:
            raise StorageError(f"Permission denied deleting {path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to delete old backup: {e}")

"""
Retention policy enforcement for host backups.

Deletes artifacts older than each target's retention_days from the host
backup directory.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

from odoo_backup.targets import TargetConfig
from .storage import BackupStorage


logger = logging.getLogger(__name__)


class RetentionManager:
    """
    Manages retention policy enforcement for backup targets.

    Artifacts belong to a target when their filename contains the target's
    database_name. This is a substring match, so a database named 'db' also
    claims the artifacts of 'db2'.
    """

    def __init__(self, storage: BackupStorage):
        """
        Initialize retention manager.

        Args:
            storage: Host backup storage to clean
        """
        self.storage = storage

    def cleanup(self, target: TargetConfig) -> int:
        """
        Delete the target's artifacts older than its retention window.

        Returns:
            Number of files deleted (0 if the backup directory does not exist)

        Raises:
            StorageError: If listing or deleting fails. Files deleted before
                the failure stay deleted.
        """
        if not self.storage.exists():
            return 0

        cutoff_date = datetime.now(timezone.utc) - timedelta(days=target.retention_days)

        files = self.storage.list_files(target.database_name)

        deleted_count = 0
        for file_info in files:
            if file_info['modified'] < cutoff_date:
                logger.info(f"Deleting old backup: {file_info['path']}")
                self.storage.delete(file_info['path'])
                deleted_count += 1

        logger.info(f"Cleaned up {deleted_count} old backup files for {target.name}")
        return deleted_count

    def cleanup_all(self, targets: Iterable[TargetConfig]) -> int:
        """
        Enforce retention for every target in order.

        Returns:
            Total number of files deleted

        Raises:
            StorageError: On the first failing target
        """
        total_deleted = 0
        for target in targets:
            total_deleted += self.cleanup(target)
        return total_deleted

"""
Backup executor - orchestrates the backup workflow for each target.

Workflow:
1. Ensure the host backup directory exists
2. Verify the target's container is running
3. Trigger the Odoo backup inside the container
4. Copy the artifact to the host
5. Remove the artifact from the container (best effort)

Steps run strictly in order and are attempted once; any failure except the
final cleanup aborts the backup for that target.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from odoo_backup.targets import TargetConfig
from .gateway import ContainerGateway, ContainerError, create_gateway
from .storage import BackupStorage


logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a batch run: (name, host path) successes and failure messages."""

    successes: List[Tuple[str, str]] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class BackupExecutor:
    """
    Runs backups for targets through a container gateway.
    """

    def __init__(self, gateway: ContainerGateway, storage: BackupStorage):
        """
        Initialize backup executor.

        Args:
            gateway: Container runtime gateway
            storage: Host backup storage
        """
        self.gateway = gateway
        self.storage = storage

    def backup(self, target: TargetConfig) -> str:
        """
        Back up one target.

        Returns:
            Host path of the backup artifact

        Raises:
            StorageError: If the host backup directory cannot be created
            ContainerError: If the container is not running or a runtime step fails
        """
        logger.info(f"Starting backup for database: {target.name}")

        self.storage.ensure_directory()

        if not self.gateway.is_running(target.container_name):
            raise ContainerError(f"Container '{target.container_name}' is not running")

        container_path = self.gateway.run_backup(target)

        host_path = self.gateway.transfer_to_host(
            target.container_name, container_path, str(self.storage.base_path)
        )

        try:
            self.gateway.remove_remote(target.container_name, container_path)
        except Exception as e:
            logger.warning(f"Failed to cleanup container backup file {container_path}: {e}")

        logger.info(f"Backup completed successfully for {target.name}: {host_path}")
        return host_path

    def backup_all(self, targets: Iterable[TargetConfig]) -> BatchResult:
        """
        Back up targets one after another.

        A failing target is recorded and the next target still runs.

        Returns:
            BatchResult with successes and failure messages in target order
        """
        result = BatchResult()

        for target in targets:
            try:
                host_path = self.backup(target)
                result.successes.append((target.name, host_path))
            except Exception as e:
                error_msg = f"Failed to backup {target.name}: {e}"
                logger.error(error_msg)
                result.failures.append(error_msg)

        if result.failures:
            logger.warning(f"Some backups failed: {', '.join(result.failures)}")

        return result


def create_executor(config) -> BackupExecutor:
    """
    Build an executor from app config.

    Args:
        config: Mapping with BACKUP_DIR and DOCKER_* keys (Flask app.config)
    """
    return BackupExecutor(create_gateway(config), BackupStorage(config['BACKUP_DIR']))

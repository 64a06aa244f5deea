"""
Backup module for odoo-backup.

This module handles the core backup lifecycle:
- Container runtime access (local docker CLI or docker over SSH)
- Execution orchestration, single target and batch
- Host storage and artifact listing
- Retention policy enforcement
"""

from .executor import BackupExecutor, BatchResult, create_executor
from .gateway import ContainerGateway, DockerCLIGateway, SSHDockerGateway, ContainerError, create_gateway
from .storage import BackupStorage, StorageError
from .retention import RetentionManager

__all__ = [
    'BackupExecutor',
    'BatchResult',
    'create_executor',
    'ContainerGateway',
    'DockerCLIGateway',
    'SSHDockerGateway',
    'ContainerError',
    'create_gateway',
    'BackupStorage',
    'StorageError',
    'RetentionManager'
]

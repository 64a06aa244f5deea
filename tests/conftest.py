"""
Shared pytest fixtures for odoo-backup tests.

This module provides fixtures for:
- Flask app, test client and CLI runner
- Sample targets and a targets file on disk
- Mock fixtures for the container runtime (subprocess, SSH)
- Backup directory helpers
"""

import os
import json
import time
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from odoo_backup import create_app
from odoo_backup.targets import TargetConfig
from odoo_backup.backup.gateway import ContainerGateway


def make_target(**kwargs) -> TargetConfig:
    """Build a valid TargetConfig, overriding any field."""
    values = {
        'name': 'Test Client',
        'database_name': 'test_database',
        'url': 'http://localhost:8069',
        'container_name': 'test_container',
        'master_password': 'admin',
        'backup_format': 'zip',
        'output_path': '/tmp/backups',
        'retention_days': 30,
    }
    values.update(kwargs)
    return TargetConfig(**values)


def touch(path, days_old: float = 0) -> str:
    """Create a file whose modification time is days_old days in the past."""
    path = str(path)
    with open(path, 'wb') as f:
        f.write(b'backup data')
    mtime = time.time() - days_old * 86400
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def sample_target():
    return make_target()


@pytest.fixture
def sample_targets():
    return [
        make_target(),
        make_target(
            name='Test Client 2',
            database_name='test_database_2',
            container_name='test_container_2',
            backup_format='dump',
            retention_days=7
        ),
    ]


@pytest.fixture
def targets_file(tmp_path, sample_targets):
    """Write sample targets to a JSON targets file."""
    path = tmp_path / 'config.json'
    path.write_text(json.dumps([t.to_dict(include_secret=True) for t in sample_targets]))
    return path


@pytest.fixture
def backup_dir(tmp_path):
    """Host backup root (not created)."""
    return tmp_path / 'backups'


@pytest.fixture(scope='function')
def app(targets_file, backup_dir):
    """
    Create Flask app with test configuration.

    Points the targets file and backup directory at tmp_path.
    """
    app = create_app('testing', overrides={
        'TARGETS_FILE': str(targets_file),
        'BACKUP_DIR': str(backup_dir),
    })
    yield app


@pytest.fixture(scope='function')
def client(app):
    """Flask test client for making HTTP requests."""
    return app.test_client()


@pytest.fixture(scope='function')
def auth_headers(app):
    return {'Authorization': f"Bearer {app.config['API_TOKEN']}"}


@pytest.fixture(scope='function')
def runner():
    """Click CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_gateway():
    """
    Gateway double with a running container and successful steps.
    """
    gateway = MagicMock(spec=ContainerGateway)
    gateway.is_running.return_value = True
    gateway.list_running.return_value = ['test_container']
    gateway.run_backup.side_effect = (
        lambda target: f"{target.output_path}/backup_{target.database_name}_20240101_120000.{target.backup_format}"
    )
    gateway.transfer_to_host.side_effect = (
        lambda container_id, container_path, host_dir: os.path.join(host_dir, os.path.basename(container_path))
    )
    return gateway


@pytest.fixture
def mock_subprocess():
    """
    Mock subprocess.run as used by DockerCLIGateway.

    Every command succeeds with empty output unless configured otherwise.
    """
    with patch('odoo_backup.backup.gateway.subprocess.run') as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout='', stderr='')
        yield mock_run


@pytest.fixture
def mock_ssh_client():
    """
    Mock paramiko SSHClient for the SSH gateway.

    exec_command returns exit status 0 with empty output.
    """
    with patch('odoo_backup.backup.gateway.SSHClient') as mock_ssh_class:
        mock_ssh = MagicMock()
        mock_ssh_class.return_value = mock_ssh

        stdout = MagicMock()
        stdout.read.return_value = b''
        stdout.channel.recv_exit_status.return_value = 0
        stderr = MagicMock()
        stderr.read.return_value = b''
        mock_ssh.exec_command.return_value = (MagicMock(), stdout, stderr)

        mock_sftp = MagicMock()
        mock_ssh.open_sftp.return_value = mock_sftp

        yield mock_ssh


@pytest.fixture
def target_factory():
    """Factory for TargetConfig objects with overridable fields."""
    return make_target


@pytest.fixture
def make_backup_file():
    """Factory creating a backup file aged a number of days."""
    return touch

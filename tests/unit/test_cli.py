"""
Unit tests for the command-line interface (odoo_backup/cli.py).

Tests every command with the container runtime mocked out.
"""

import json
from unittest.mock import patch

import pytest

from odoo_backup.cli import cli
from odoo_backup.backup import BackupExecutor, BackupStorage, ContainerError
from odoo_backup.utils.crypto import SecretCipher


@pytest.fixture
def patched_executor(mock_gateway, backup_dir):
    executor = BackupExecutor(mock_gateway, BackupStorage(str(backup_dir)))
    with patch('odoo_backup.cli.create_executor', return_value=executor):
        yield executor


@pytest.fixture
def patched_gateway(mock_gateway):
    with patch('odoo_backup.cli.create_gateway', return_value=mock_gateway):
        yield mock_gateway


class TestCliOptions:
    """Test global options."""

    def test_help(self, runner):
        result = runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        for command in ('backup', 'list', 'status', 'clean', 'list-backups', 'encrypt-secret'):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert 'odoo-backup' in result.output

    def test_config_and_backup_dir_override(self, runner, app, tmp_path, targets_file):
        other_dir = tmp_path / 'elsewhere'

        result = runner.invoke(cli, ['-c', str(targets_file), '-b', str(other_dir), '-v', 'list'], obj=app)

        assert result.exit_code == 0
        assert app.config['BACKUP_DIR'] == str(other_dir)
        assert app.config['TARGETS_FILE'] == str(targets_file)
        assert app.config['VERBOSE'] is True

    def test_missing_targets_file(self, runner, app, tmp_path):
        result = runner.invoke(cli, ['-c', str(tmp_path / 'missing.json'), 'list'], obj=app)

        assert result.exit_code == 1
        assert 'Failed to read config file' in result.output

    def test_invalid_targets_file(self, runner, app, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps([{'name': ''}]))

        result = runner.invoke(cli, ['-c', str(path), 'list'], obj=app)

        assert result.exit_code == 1
        assert 'Database 0' in result.output


class TestBackupCommand:
    """Test the backup command."""

    def test_backup_all(self, runner, app, patched_executor):
        result = runner.invoke(cli, ['backup'], obj=app)

        assert result.exit_code == 0
        assert 'Completed 2 backups:' in result.output
        assert 'Test Client: ' in result.output
        assert 'Test Client 2: ' in result.output

    def test_backup_all_partial_failure_exits_zero(self, runner, app, patched_executor, mock_gateway):
        mock_gateway.is_running.side_effect = lambda container: container == 'test_container'

        result = runner.invoke(cli, ['backup'], obj=app)

        assert result.exit_code == 0
        assert 'Completed 1 backups:' in result.output
        assert "Failed to backup Test Client 2: Container 'test_container_2' is not running" in result.output

    def test_backup_all_fail_on_error(self, runner, app, patched_executor, mock_gateway):
        mock_gateway.is_running.return_value = False

        result = runner.invoke(cli, ['backup', '--fail-on-error'], obj=app)

        assert result.exit_code == 1
        assert 'Failed 2 backups:' in result.output

    def test_backup_single_client(self, runner, app, patched_executor, mock_gateway):
        result = runner.invoke(cli, ['backup', '--client', 'Test Client 2'], obj=app)

        assert result.exit_code == 0
        assert 'Backup completed successfully:' in result.output
        assert 'backup_test_database_2_20240101_120000.dump' in result.output
        mock_gateway.is_running.assert_called_once_with('test_container_2')

    def test_backup_single_client_failure_exits_nonzero(self, runner, app, patched_executor, mock_gateway):
        mock_gateway.run_backup.side_effect = ContainerError('Backup command failed: HTTP 403')

        result = runner.invoke(cli, ['backup', '-c', 'Test Client'], obj=app)

        assert result.exit_code == 1
        assert 'Backup command failed: HTTP 403' in result.output

    def test_backup_unknown_client(self, runner, app, patched_executor, mock_gateway):
        result = runner.invoke(cli, ['backup', '--client', 'Nope'], obj=app)

        assert result.exit_code == 1
        assert "Client 'Nope' not found" in result.output
        mock_gateway.run_backup.assert_not_called()


class TestListCommand:

    def test_list_targets(self, runner, app):
        result = runner.invoke(cli, ['list'], obj=app)

        assert result.exit_code == 0
        assert '1. Test Client (test_database)' in result.output
        assert '2. Test Client 2 (test_database_2)' in result.output
        assert 'Container: test_container' in result.output
        assert 'Format: dump' in result.output
        assert 'admin' not in result.output


class TestStatusCommand:

    def test_status(self, runner, app, patched_gateway):
        patched_gateway.is_running.side_effect = lambda container: container == 'test_container'
        patched_gateway.list_running.return_value = ['test_container', 'postgres']

        result = runner.invoke(cli, ['status'], obj=app)

        assert result.exit_code == 0
        assert 'Test Client (test_container) - Running' in result.output
        assert 'Test Client 2 (test_container_2) - Stopped' in result.output
        assert 'All running containers:' in result.output
        assert '  - postgres' in result.output

    def test_status_no_containers(self, runner, app, patched_gateway):
        patched_gateway.is_running.return_value = False
        patched_gateway.list_running.return_value = []

        result = runner.invoke(cli, ['status'], obj=app)

        assert result.exit_code == 0
        assert 'No containers are currently running' in result.output

    def test_status_runtime_error(self, runner, app, patched_gateway):
        patched_gateway.list_running.side_effect = ContainerError('Failed to list containers: daemon down')

        result = runner.invoke(cli, ['status'], obj=app)

        assert result.exit_code == 1
        assert 'daemon down' in result.output


class TestCleanCommand:

    def test_clean_all(self, runner, app, backup_dir, make_backup_file):
        backup_dir.mkdir()
        make_backup_file(backup_dir / 'backup_test_database_20200101_000000.zip', days_old=60)
        make_backup_file(backup_dir / 'backup_test_database_20240101_000000.zip', days_old=1)

        result = runner.invoke(cli, ['clean'], obj=app)

        assert result.exit_code == 0
        assert 'Cleaned up 1 old backup files total' in result.output

    def test_clean_single_client(self, runner, app, backup_dir, make_backup_file):
        backup_dir.mkdir()
        make_backup_file(backup_dir / 'backup_test_database_2_20240101_000000.dump', days_old=10)

        result = runner.invoke(cli, ['clean', '--client', 'Test Client 2'], obj=app)

        assert result.exit_code == 0
        assert 'Cleaned up 1 old backup files for Test Client 2' in result.output

    def test_clean_missing_backup_dir(self, runner, app):
        result = runner.invoke(cli, ['clean'], obj=app)

        assert result.exit_code == 0
        assert 'Cleaned up 0 old backup files total' in result.output

    def test_clean_unknown_client(self, runner, app):
        result = runner.invoke(cli, ['clean', '-c', 'Nope'], obj=app)

        assert result.exit_code == 1
        assert "Client 'Nope' not found" in result.output


class TestListBackupsCommand:

    def test_no_backups(self, runner, app):
        result = runner.invoke(cli, ['list-backups'], obj=app)

        assert result.exit_code == 0
        assert 'No backup files found' in result.output

    def test_list_backups_filtered(self, runner, app, backup_dir, make_backup_file):
        backup_dir.mkdir()
        make_backup_file(backup_dir / 'backup_sales_20240102_000000.zip')
        make_backup_file(backup_dir / 'backup_sales_20240101_000000.zip')
        make_backup_file(backup_dir / 'backup_hr_20240101_000000.zip')

        result = runner.invoke(cli, ['list-backups', '--database', 'sales'], obj=app)

        assert result.exit_code == 0
        lines = [line.strip() for line in result.output.splitlines() if line.strip().startswith('- ')]
        assert lines == [
            '- backup_sales_20240101_000000.zip',
            '- backup_sales_20240102_000000.zip',
        ]


class TestEncryptSecretCommand:

    def test_encrypt_secret(self, runner, app):
        result = runner.invoke(cli, ['encrypt-secret', '--secret', 's3cret'], obj=app)

        assert result.exit_code == 0
        token = result.output.strip().splitlines()[-1]
        assert SecretCipher(app.config['SECRET_KEY']).decrypt(token) == 's3cret'

    def test_encrypt_secret_without_key(self, runner, app):
        app.config['SECRET_KEY'] = None

        result = runner.invoke(cli, ['encrypt-secret', '--secret', 's3cret'], obj=app)

        assert result.exit_code == 1
        assert 'SECRET_KEY is not configured' in result.output

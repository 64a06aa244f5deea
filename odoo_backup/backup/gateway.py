"""
Container runtime gateway.

Talks to the docker daemon that hosts the Odoo containers:
- DockerCLIGateway: runs the local docker binary
- SSHDockerGateway: runs docker on a remote host over SSH/SFTP

Both share the backup operations defined on ContainerGateway and differ only
in how a command is executed and how a file is copied out of a container.
Every call is a fresh external invocation; gateways keep no state between
calls.
"""

import logging
import os
import posixpath
import shlex
import subprocess
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import paramiko
from paramiko import SSHClient, AutoAddPolicy

from odoo_backup.targets import TargetConfig


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'


class ContainerError(RuntimeError):
    """Raised when an operation against the container runtime fails."""
    pass


@dataclass
class CommandResult:
    """Exit status and output of one runtime command."""

    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def generate_backup_filename(database_name: str, backup_format: str, now: Optional[datetime] = None) -> str:
    """
    Generate artifact filename with a UTC timestamp.

    Args:
        database_name: Odoo database name
        backup_format: 'zip' or 'dump'
        now: Timestamp to use (defaults to current UTC time)

    Returns:
        Filename like: backup_mydb_20240115_143022.zip
    """
    if now is None:
        now = datetime.now(timezone.utc)
    timestamp = now.strftime(TIMESTAMP_FORMAT)
    return f"backup_{database_name}_{timestamp}.{backup_format}"


def build_backup_command(target: TargetConfig, container_path: str) -> List[str]:
    """Build the curl invocation that asks Odoo for a database backup."""
    # --form-string: values are never read as @file / <file
    return [
        'curl', '-sS', '--fail', '-X', 'POST',
        '--form-string', f"master_pwd={target.master_password}",
        '--form-string', f"name={target.database_name}",
        '--form-string', f"backup_format={target.backup_format}",
        f"{target.url.rstrip('/')}/web/database/backup",
        '-o', container_path,
    ]


class ContainerGateway:
    """
    Backup operations against a container runtime.

    Subclasses implement run_command() and copy_from_container().
    """

    def __init__(self, docker_binary: str = 'docker'):
        self.docker_binary = docker_binary

    def run_command(self, args: List[str]) -> CommandResult:
        """
        Run a docker command.

        Args:
            args: Arguments after the docker binary, e.g. ['ps', '-q']

        Raises:
            ContainerError: If the command cannot be issued at all
        """
        raise NotImplementedError

    def copy_from_container(self, container_id: str, container_path: str, host_path: str):
        """
        Copy one file out of a container onto this host.

        Raises:
            ContainerError: If the copy fails
        """
        raise NotImplementedError

    def _exec(self, container_id: str, args: List[str]) -> CommandResult:
        return self.run_command(['exec', container_id] + list(args))

    def is_running(self, container_id: str) -> bool:
        """
        Check whether a container with exactly this name is running.

        docker ps --filter name= matches substrings, so "odoo" would also
        match "odoo_test". Only an output line equal to container_id counts.

        Raises:
            ContainerError: If the status query fails
        """
        result = self.run_command(['ps', '--filter', f"name={container_id}", '--format', '{{.Names}}'])
        if not result.ok:
            raise ContainerError(f"Docker command failed: {result.stderr.strip()}")

        names = [line.strip() for line in result.stdout.splitlines()]
        return container_id in names

    def list_running(self) -> List[str]:
        """
        List names of all running containers.

        Raises:
            ContainerError: If the query fails
        """
        result = self.run_command(['ps', '--format', '{{.Names}}'])
        if not result.ok:
            raise ContainerError(f"Failed to list containers: {result.stderr.strip()}")

        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def run_backup(self, target: TargetConfig) -> str:
        """
        Trigger an Odoo backup inside the target's container.

        The container must be running; BackupExecutor checks that first.

        Returns:
            Path of the artifact inside the container

        Raises:
            ContainerError: If the directory, trigger or existence check fails
        """
        filename = generate_backup_filename(target.database_name, target.backup_format)
        container_path = posixpath.join(target.output_path, filename)

        result = self._exec(target.container_name, ['mkdir', '-p', target.output_path])
        if not result.ok:
            raise ContainerError(f"Failed to create backup directory: {result.stderr.strip()}")

        logger.info(f"Executing backup for {target.name} in container {target.container_name}")

        result = self._exec(target.container_name, build_backup_command(target, container_path))
        if not result.ok:
            raise ContainerError(f"Backup command failed: {result.stderr.strip()}")

        result = self._exec(target.container_name, ['test', '-f', container_path])
        if not result.ok:
            raise ContainerError(f"Backup file was not created: {container_path}")

        logger.info(f"Backup created successfully: {container_path}")
        return container_path

    def transfer_to_host(self, container_id: str, container_path: str, host_dir: str) -> str:
        """
        Copy an artifact from the container into a host directory.

        Returns:
            Host path of the copied artifact (same filename)

        Raises:
            ContainerError: If the copy fails
        """
        filename = posixpath.basename(container_path) or 'backup'
        host_path = os.path.join(str(host_dir), filename)

        logger.info(f"Copying backup from container to host: {container_path} -> {host_path}")
        self.copy_from_container(container_id, container_path, host_path)
        logger.info(f"Backup copied successfully to: {host_path}")

        return host_path

    def remove_remote(self, container_id: str, container_path: str):
        """
        Remove an artifact inside the container. Failures are only logged.
        """
        logger.info(f"Cleaning up backup file in container: {container_path}")

        try:
            result = self._exec(container_id, ['rm', '-f', container_path])
        except ContainerError as e:
            logger.warning(f"Failed to cleanup container backup file: {e}")
            return

        if not result.ok:
            logger.warning(f"Failed to cleanup container backup file: {result.stderr.strip()}")
        else:
            logger.info("Container backup file cleaned up successfully")


class DockerCLIGateway(ContainerGateway):
    """
    Gateway that runs the local docker binary.
    """

    def run_command(self, args: List[str]) -> CommandResult:
        cmd = [self.docker_binary] + list(args)
        logger.debug(f"Running: {cmd[0]} {' '.join(args[:2])}")

        try:
            completed = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ContainerError(f"Failed to run {self.docker_binary}: {e}")

        return CommandResult(completed.returncode, completed.stdout, completed.stderr)

    def copy_from_container(self, container_id: str, container_path: str, host_path: str):
        result = self.run_command(['cp', f"{container_id}:{container_path}", host_path])
        if not result.ok:
            raise ContainerError(f"Failed to copy backup: {result.stderr.strip()}")


class SSHDockerGateway(ContainerGateway):
    """
    Gateway that runs docker on a remote host via SSH.

    Artifacts are copied out of the container to a temporary file on the
    remote host, downloaded with SFTP, then the temporary file is removed.
    """

    def __init__(self, host: str, username: str, port: int = 22, password: Optional[str] = None,
                 private_key: Optional[str] = None, docker_binary: str = 'docker', remote_tmp_dir: str = '/tmp'):
        """
        Initialize SSH gateway.

        Args:
            host: SSH hostname or IP of the docker host
            username: SSH username
            port: SSH port (default 22)
            password: SSH password (optional if using key)
            private_key: Path to private key file (optional)
            docker_binary: docker executable on the remote host
            remote_tmp_dir: Remote directory for transfer staging
        """
        super().__init__(docker_binary)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.private_key_path = private_key
        self.remote_tmp_dir = remote_tmp_dir

    def _connect(self) -> SSHClient:
        """
        Open a new SSH connection.

        Raises:
            ContainerError: If connection fails
        """
        connect_kwargs = {
            'hostname': self.host,
            'port': self.port,
            'username': self.username,
            'timeout': 30
        }

        if self.password:
            connect_kwargs['password'] = self.password
        elif self.private_key_path:
            key_path = Path(self.private_key_path).expanduser()
            if not key_path.exists():
                raise ContainerError(f"Private key not found: {self.private_key_path}")
            connect_kwargs['key_filename'] = str(key_path)

        client = SSHClient()
        client.set_missing_host_key_policy(AutoAddPolicy())

        try:
            client.connect(**connect_kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise ContainerError(f"SSH authentication failed: {e}")
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ContainerError(f"Failed to connect to {self.host}: {e}")

        return client

    def _run_remote(self, client: SSHClient, args: List[str]) -> CommandResult:
        command = shlex.join([self.docker_binary] + list(args))
        try:
            _, stdout, stderr = client.exec_command(command)
            out = stdout.read().decode(errors='replace')
            err = stderr.read().decode(errors='replace')
            return CommandResult(stdout.channel.recv_exit_status(), out, err)
        except (paramiko.SSHException, OSError) as e:
            raise ContainerError(f"Failed to run command on {self.host}: {e}")

    def run_command(self, args: List[str]) -> CommandResult:
        client = self._connect()
        try:
            return self._run_remote(client, args)
        finally:
            client.close()

    def copy_from_container(self, container_id: str, container_path: str, host_path: str):
        staging_path = posixpath.join(
            self.remote_tmp_dir,
            f"odoo_backup_{uuid.uuid4().hex}_{posixpath.basename(container_path)}"
        )

        client = self._connect()
        try:
            result = self._run_remote(client, ['cp', f"{container_id}:{container_path}", staging_path])
            if not result.ok:
                raise ContainerError(f"Failed to copy backup: {result.stderr.strip()}")

            try:
                sftp = client.open_sftp()
            except (paramiko.SSHException, OSError) as e:
                raise ContainerError(f"Failed to open SFTP session on {self.host}: {e}")

            try:
                sftp.get(staging_path, host_path)
            except (paramiko.SSHException, OSError) as e:
                raise ContainerError(f"Failed to download {staging_path} from {self.host}: {e}")
            finally:
                try:
                    sftp.remove(staging_path)
                except (paramiko.SSHException, OSError) as e:
                    logger.warning(f"Failed to remove staging file {staging_path} on {self.host}: {e}")
                sftp.close()
        finally:
            client.close()


def create_gateway(config) -> ContainerGateway:
    """
    Factory function to create the gateway for an app config.

    Args:
        config: Mapping with DOCKER_* keys (Flask app.config)

    Returns:
        SSHDockerGateway if DOCKER_SSH_HOST is set, else DockerCLIGateway
    """
    docker_binary = config.get('DOCKER_BINARY') or 'docker'

    if config.get('DOCKER_SSH_HOST'):
        return SSHDockerGateway(
            host=config['DOCKER_SSH_HOST'],
            port=config.get('DOCKER_SSH_PORT') or 22,
            username=config.get('DOCKER_SSH_USER'),
            password=config.get('DOCKER_SSH_PASSWORD'),
            private_key=config.get('DOCKER_SSH_KEY'),
            docker_binary=docker_binary
        )

    return DockerCLIGateway(docker_binary)

"""
odoo-backup command-line interface.

Back up Odoo databases running in docker containers, inspect container
status and manage stored backups.
"""

import logging
from functools import wraps

import click
from flask import current_app

from odoo_backup import create_app, __version__
from odoo_backup.targets import load_targets, ConfigurationError
from odoo_backup.backup import (
    BackupStorage,
    ContainerError,
    RetentionManager,
    StorageError,
    create_executor,
    create_gateway,
)
from odoo_backup.utils.crypto import SecretCipher


logger = logging.getLogger(__name__)


def handle_errors(f):
    """Turn orchestration errors into a printed message and exit status 1."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (ConfigurationError, ContainerError, StorageError) as e:
            logger.error(f"Application error: {e}")
            raise click.ClickException(str(e))
    return decorated


def _targets():
    return load_targets(current_app.config['TARGETS_FILE'], current_app.config.get('SECRET_KEY'))


@click.group()
@click.option('-c', '--config', 'targets_file', default=None,
              help='Targets file (default: $BACKUP_CONFIG or /etc/odoo-backup/config.json)')
@click.option('-b', '--backup-dir', default=None,
              help='Host backup directory (default: $BACKUP_DIR or /var/backups/odoo)')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@click.version_option(__version__, prog_name='odoo-backup')
@click.pass_context
def cli(ctx, targets_file, backup_dir, verbose):
    """Automate Odoo backups inside Docker containers."""
    overrides = {'SCHEDULER_ENABLED': False, 'VERBOSE': verbose}
    if targets_file:
        overrides['TARGETS_FILE'] = targets_file
    if backup_dir:
        overrides['BACKUP_DIR'] = backup_dir

    # Tests pass a ready app through obj
    app = ctx.obj
    if app is None:
        app = create_app(overrides=overrides)
    else:
        app.config.update(overrides)

    ctx.obj = app
    ctx.with_resource(app.app_context())
    logger.info("Starting Odoo Backup Service")


@cli.command()
@click.option('-c', '--client', default=None, help='Back up only this configured client')
@click.option('--fail-on-error', is_flag=True, help='Exit with status 1 if any backup in the batch fails')
@handle_errors
def backup(client, fail_on_error):
    """Back up all configured databases, or one client."""
    targets = _targets()
    executor = create_executor(current_app.config)

    if client:
        target = targets.require(client)
        logger.info(f"Backing up client: {client}")
        backup_path = executor.backup(target)
        click.echo(f"Backup completed successfully: {backup_path}")
        return

    logger.info("Backing up all configured databases")
    result = executor.backup_all(targets)

    if not result.successes:
        logger.warning("No backups were completed successfully")
    else:
        click.echo(f"Completed {len(result.successes)} backups:")
        for client_name, backup_path in result.successes:
            click.echo(f"  - {client_name}: {backup_path}")

    if result.has_failures:
        click.echo(f"Failed {len(result.failures)} backups:")
        for message in result.failures:
            click.echo(f"  - {message}")
        if fail_on_error:
            raise click.exceptions.Exit(1)


@cli.command('list')
@handle_errors
def list_targets():
    """List configured databases."""
    targets = _targets()

    click.echo("Configured databases:")
    for i, target in enumerate(targets, start=1):
        click.echo(f"  {i}. {target.name} ({target.database_name})")
        click.echo(f"     Container: {target.container_name}")
        click.echo(f"     URL: {target.url}")
        click.echo(f"     Format: {target.backup_format}")
        click.echo(f"     Retention: {target.retention_days} days")
        click.echo()


@cli.command()
@handle_errors
def status():
    """Show container status for each database."""
    targets = _targets()
    gateway = create_gateway(current_app.config)

    click.echo("Docker container status:")
    containers = gateway.list_running()

    for target in targets:
        is_running = gateway.is_running(target.container_name)
        state = 'Running' if is_running else 'Stopped'
        click.echo(f"  - {target.name} ({target.container_name}) - {state}")

    if not containers:
        click.echo("  No containers are currently running")
    else:
        click.echo()
        click.echo("All running containers:")
        for container in containers:
            click.echo(f"  - {container}")


@cli.command()
@click.option('-c', '--client', default=None, help='Clean only this configured client')
@handle_errors
def clean(client):
    """Delete backups older than each database's retention window."""
    targets = _targets()
    retention = RetentionManager(BackupStorage(current_app.config['BACKUP_DIR']))

    if client:
        target = targets.require(client)
        logger.info(f"Cleaning old backups for client: {client}")
        deleted_count = retention.cleanup(target)
        click.echo(f"Cleaned up {deleted_count} old backup files for {client}")
        return

    logger.info("Cleaning old backups for all databases")
    total_deleted = retention.cleanup_all(targets)
    click.echo(f"Cleaned up {total_deleted} old backup files total")


@cli.command('list-backups')
@click.option('-d', '--database', default=None, help='Only files whose name contains this database name')
@handle_errors
def list_backups(database):
    """List backup files stored on the host."""
    storage = BackupStorage(current_app.config['BACKUP_DIR'])
    backups = storage.list_artifacts(database)

    if not backups:
        click.echo("No backup files found")
    else:
        click.echo("Backup files:")
        for name in backups:
            click.echo(f"  - {name}")


@cli.command('encrypt-secret')
@click.password_option('--secret', prompt='Master password', help='Value to encrypt')
def encrypt_secret(secret):
    """Encrypt a master password for the targets file."""
    secret_key = current_app.config.get('SECRET_KEY')
    if not secret_key:
        raise click.ClickException("SECRET_KEY is not configured")

    click.echo(SecretCipher(secret_key).encrypt(secret))


def main():
    cli(prog_name='odoo-backup')


if __name__ == '__main__':
    main()

"""
Status API routes - read-only view of targets, containers and backups.
"""

import hmac
from functools import wraps

from flask import Blueprint, jsonify, request, current_app

from odoo_backup.targets import load_targets, ConfigurationError
from odoo_backup.backup import BackupStorage, StorageError, ContainerError, create_gateway
from odoo_backup.scheduler import get_scheduled_jobs


bp = Blueprint('api', __name__, url_prefix='/api')


def token_required(f):
    """Require 'Authorization: Bearer <API_TOKEN>' on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config.get('API_TOKEN')
        if not expected:
            return jsonify({'error': 'API token not configured'}), 503

        header = request.headers.get('Authorization', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer' or not hmac.compare_digest(token.encode(), expected.encode()):
            return jsonify({'error': 'Unauthorized'}), 401

        return f(*args, **kwargs)
    return decorated


@bp.errorhandler(ConfigurationError)
def handle_configuration_error(e):
    return jsonify({'error': str(e)}), 400


@bp.errorhandler(ContainerError)
def handle_container_error(e):
    return jsonify({'error': str(e)}), 502


@bp.errorhandler(StorageError)
def handle_storage_error(e):
    return jsonify({'error': str(e)}), 500


def _load_targets():
    return load_targets(current_app.config['TARGETS_FILE'], current_app.config.get('SECRET_KEY'))


@bp.route('/targets', methods=['GET'])
@token_required
def list_targets():
    """
    Get configured backup targets.

    Returns:
        JSON array of targets without their master passwords
    """
    targets = _load_targets()
    return jsonify([target.to_dict() for target in targets])


@bp.route('/status', methods=['GET'])
@token_required
def get_status():
    """
    Get container status for every target.

    Returns:
        JSON with:
        - targets: name, container and running flag per target
        - running_containers: names of all running containers
        - scheduled_jobs: jobs of the in-process scheduler, if any
    """
    targets = _load_targets()
    gateway = create_gateway(current_app.config)

    target_status = []
    for target in targets:
        target_status.append({
            'name': target.name,
            'container_name': target.container_name,
            'running': gateway.is_running(target.container_name)
        })

    return jsonify({
        'targets': target_status,
        'running_containers': gateway.list_running(),
        'scheduled_jobs': get_scheduled_jobs()
    })


@bp.route('/backups', methods=['GET'])
@token_required
def list_backups():
    """
    Get backup files stored on the host.

    Query params:
        - database: Only files whose name contains this value

    Returns:
        JSON array of files sorted by name
    """
    database = request.args.get('database') or None
    storage = BackupStorage(current_app.config['BACKUP_DIR'])

    files = sorted(storage.list_files(database), key=lambda f: f['name'])

    return jsonify([
        {
            'name': f['name'],
            'size_bytes': f['size'],
            'size_mb': round(f['size'] / 1024 / 1024, 2),
            'modified': f['modified'].astimezone().isoformat()
        }
        for f in files
    ])

"""
Backup target configuration.

Loads the JSON targets file, validates every entry and offers lookup of a
target by its name.
"""

import json
from dataclasses import dataclass, asdict
from typing import List, Optional, Dict, Any

from odoo_backup.utils.crypto import SecretCipher, is_encrypted


BACKUP_FORMATS = ('zip', 'dump')

DEFAULT_OUTPUT_PATH = '/tmp/backups'
DEFAULT_RETENTION_DAYS = 30

REQUIRED_FIELDS = ('name', 'database_name', 'url', 'container_name', 'master_password')


class ConfigurationError(Exception):
    """Raised when target configuration is missing, malformed or invalid."""
    pass


@dataclass(frozen=True)
class TargetConfig:
    """One Odoo database to back up."""

    name: str
    database_name: str
    url: str
    container_name: str
    master_password: str
    backup_format: str = 'zip'
    output_path: str = DEFAULT_OUTPUT_PATH
    retention_days: int = DEFAULT_RETENTION_DAYS

    def to_dict(self, include_secret: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        if not include_secret:
            data.pop('master_password')
        return data


def validate_target(target: TargetConfig, index: int = 0):
    """
    Check a target against the configuration invariants.

    Args:
        target: Target to check
        index: Position in the targets file, used in error messages

    Raises:
        ConfigurationError: On the first violated invariant
    """
    for field_name in REQUIRED_FIELDS:
        value = getattr(target, field_name)
        if not isinstance(value, str) or not value:
            raise ConfigurationError(f"Database {index}: {field_name} cannot be empty")

    if target.backup_format not in BACKUP_FORMATS:
        raise ConfigurationError(
            f"Database {index}: backup_format must be one of: {', '.join(BACKUP_FORMATS)}"
        )

    if not isinstance(target.output_path, str) or not target.output_path:
        raise ConfigurationError(f"Database {index}: output_path cannot be empty")

    retention = target.retention_days
    if isinstance(retention, bool) or not isinstance(retention, int) or retention < 0:
        raise ConfigurationError(f"Database {index}: retention_days must be a non-negative integer")


class TargetRegistry:
    """
    Ordered, validated collection of backup targets.
    """

    def __init__(self, targets: List[TargetConfig]):
        if not targets:
            raise ConfigurationError("No databases configured")

        for index, target in enumerate(targets):
            validate_target(target, index)

        self.targets = list(targets)

    def __iter__(self):
        return iter(self.targets)

    def __len__(self):
        return len(self.targets)

    def get(self, name: str) -> Optional[TargetConfig]:
        """Find a target by exact, case-sensitive name."""
        for target in self.targets:
            if target.name == name:
                return target
        return None

    def require(self, name: str) -> TargetConfig:
        """
        Find a target by name for callers that explicitly asked for it.

        Raises:
            ConfigurationError: If no target has that name
        """
        target = self.get(name)
        if target is None:
            raise ConfigurationError(f"Client '{name}' not found")
        return target


def parse_targets(data, secret_key: Optional[str] = None) -> TargetRegistry:
    """
    Build a registry from decoded JSON.

    Args:
        data: List of target dicts, or a dict with a ``databases`` list
        secret_key: SECRET_KEY for decrypting ``enc:`` master passwords

    Returns:
        Validated TargetRegistry

    Raises:
        ConfigurationError: If the structure or any entry is invalid
    """
    if isinstance(data, dict):
        data = data.get('databases')

    if not isinstance(data, list):
        raise ConfigurationError("Targets file must contain a list of databases")

    cipher = None
    targets = []

    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Database {index}: entry must be an object")

        missing = [key for key in REQUIRED_FIELDS + ('backup_format',) if key not in entry]
        if missing:
            raise ConfigurationError(f"Database {index}: missing field(s): {', '.join(missing)}")

        unknown = set(entry) - set(TargetConfig.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Database {index}: unknown field(s): {', '.join(sorted(unknown))}")

        values = dict(entry)
        if is_encrypted(values['master_password']):
            if not secret_key:
                raise ConfigurationError(
                    f"Database {index}: master_password is encrypted but SECRET_KEY is not set"
                )
            if cipher is None:
                cipher = SecretCipher(secret_key)
            try:
                values['master_password'] = cipher.decrypt(values['master_password'])
            except ValueError as e:
                raise ConfigurationError(f"Database {index}: {e}")

        targets.append(TargetConfig(**values))

    return TargetRegistry(targets)


def load_targets(path: str, secret_key: Optional[str] = None) -> TargetRegistry:
    """
    Load and validate the targets file.

    Raises:
        StorageError: If the file cannot be read
        ConfigurationError: If its content is invalid
    """
    from odoo_backup.backup.storage import StorageError

    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise StorageError(f"Failed to read config file {path}: {e}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file: {e}")

    return parse_targets(data, secret_key)

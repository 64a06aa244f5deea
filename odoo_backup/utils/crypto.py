"""
Secret encryption for the targets file.

Master passwords in the targets file may be stored as ``enc:<token>``
instead of plaintext. Tokens are Fernet ciphertexts under a key derived
from the application SECRET_KEY.
"""

import base64
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


ENCRYPTED_PREFIX = 'enc:'


class SecretCipher:
    """
    Encrypts and decrypts target secrets with a key derived from SECRET_KEY.
    """

    def __init__(self, secret_key: str):
        """
        Initialize with the application SECRET_KEY.

        Args:
            secret_key: Flask app SECRET_KEY
        """
        # Fixed salt: SECRET_KEY itself is the secret
        fixed_salt = b'odoo_backup_secret_salt_v1'

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=fixed_salt,
            iterations=100000,
        )

        key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode()))
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret for the targets file.

        Returns:
            Value with the ``enc:`` prefix, ready to paste into the targets file
        """
        token = self._fernet.encrypt(plaintext.encode()).decode()
        return f"{ENCRYPTED_PREFIX}{token}"

    def decrypt(self, value: str) -> str:
        """
        Decrypt an ``enc:`` value.

        Raises:
            ValueError: If the value is not prefixed or the token is invalid
        """
        if not is_encrypted(value):
            raise ValueError("Value is not an encrypted secret")

        try:
            return self._fernet.decrypt(value[len(ENCRYPTED_PREFIX):].encode()).decode()
        except InvalidToken:
            raise ValueError("Invalid encrypted secret (wrong SECRET_KEY or corrupted value)")


def is_encrypted(value: str) -> bool:
    return isinstance(value, str) and value.startswith(ENCRYPTED_PREFIX)

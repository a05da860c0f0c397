"""
Encryption of integration access tokens at rest.

Tokens are Fernet-encrypted with INTEGRATION_ENCRYPTION_KEY before they are
written and decrypted only when a GitHub call needs them.
"""

from cryptography.fernet import Fernet, InvalidToken

from notra.config import get_integration_encryption_key


class TokenEncryptionError(Exception):
    """Missing or invalid key, or a stored token that cannot be decrypted."""


def _fernet() -> Fernet:
    key = get_integration_encryption_key()
    if not key:
        raise TokenEncryptionError("INTEGRATION_ENCRYPTION_KEY environment variable is not set")
    try:
        return Fernet(key.encode())
    except ValueError as e:
        raise TokenEncryptionError(
            "INTEGRATION_ENCRYPTION_KEY must be a urlsafe base64-encoded 32-byte key"
        ) from e


def encrypt_token(token: str) -> str:
    return _fernet().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    try:
        return _fernet().decrypt(encrypted_token.encode()).decode()
    except InvalidToken as e:
        raise TokenEncryptionError("Invalid encrypted token") from e

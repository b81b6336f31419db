"""
Encryption service for mailbox OAuth tokens.
Uses Fernet symmetric encryption; tokens are stored as BYTEA.
"""

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class EncryptionError(Exception):
    """Raised when tokens cannot be encrypted or decrypted. Never recoverable by retry."""

    recoverable = False


def _get_fernet() -> Fernet:
    """
    Get Fernet instance with encryption key from environment.

    Raises:
        EncryptionError: If encryption key is not configured or invalid
    """
    if not settings.ENCRYPTION_KEY:
        raise EncryptionError("ENCRYPTION_KEY not configured in environment")

    try:
        return Fernet(settings.ENCRYPTION_KEY.encode("utf-8"))
    except Exception as e:
        logger.error("Failed to initialize Fernet cipher", error=str(e))
        raise EncryptionError(f"Invalid encryption key: {e}") from e


def encrypt_token(token: str) -> bytes:
    """Encrypt a token string for database storage."""
    if not token or not isinstance(token, str):
        raise EncryptionError("Token must be a non-empty string")

    try:
        return _get_fernet().encrypt(token.encode("utf-8"))
    except EncryptionError:
        raise
    except Exception as e:
        logger.error("Failed to encrypt token", error=str(e))
        raise EncryptionError(f"Encryption failed: {e}") from e


def decrypt_token(encrypted_token: bytes | memoryview) -> str:
    """Decrypt a token read from a BYTEA column."""
    if isinstance(encrypted_token, memoryview):
        encrypted_token = encrypted_token.tobytes()

    if not encrypted_token or not isinstance(encrypted_token, bytes):
        raise EncryptionError("Encrypted token must be non-empty bytes")

    try:
        return _get_fernet().decrypt(encrypted_token).decode("utf-8")
    except InvalidToken as e:
        logger.error("Token decryption failed - invalid token")
        raise EncryptionError("Invalid or corrupted token") from e


def decrypt_optional_token(encrypted_token: bytes | memoryview | None) -> str | None:
    """Decrypt a nullable token column; NULL stays None."""
    if not encrypted_token:
        return None
    return decrypt_token(encrypted_token)

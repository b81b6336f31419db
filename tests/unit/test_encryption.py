"""
Test encryption service functionality.
"""

import pytest
from cryptography.fernet import Fernet

from app.services.infrastructure import encryption_service
from app.services.infrastructure.encryption_service import (
    EncryptionError,
    decrypt_optional_token,
    decrypt_token,
    encrypt_token,
)


@pytest.fixture(autouse=True)
def encryption_key(monkeypatch):
    monkeypatch.setattr(encryption_service.settings, "ENCRYPTION_KEY", Fernet.generate_key().decode())


def test_basic_encryption_decryption():
    """Test that encryption and decryption work correctly."""
    test_token = "fake_oauth_token_12345"

    encrypted = encrypt_token(test_token)

    assert encrypted != test_token.encode()
    assert decrypt_token(encrypted) == test_token


def test_decrypts_bytea_memoryview():
    encrypted = encrypt_token("ya29.token")

    assert decrypt_token(memoryview(encrypted)) == "ya29.token"


def test_optional_token_keeps_null():
    assert decrypt_optional_token(None) is None


def test_encryption_with_different_tokens():
    """Test encryption with various token formats."""
    test_tokens = [
        "simple_token",
        "token_with_special_chars_!@#$%^&*()",
        "very_long_token_" + "x" * 100,
    ]

    for token in test_tokens:
        assert decrypt_token(encrypt_token(token)) == token


def test_empty_token_rejected():
    with pytest.raises(EncryptionError):
        encrypt_token("")


def test_tampered_token_rejected():
    encrypted = bytearray(encrypt_token("secret"))
    encrypted[-5] ^= 1

    with pytest.raises(EncryptionError) as exc_info:
        decrypt_token(bytes(encrypted))

    assert exc_info.value.recoverable is False


def test_missing_key(monkeypatch):
    monkeypatch.setattr(encryption_service.settings, "ENCRYPTION_KEY", None)

    with pytest.raises(EncryptionError):
        encrypt_token("secret")

"""Symmetric encryption of stored credentials (Fernet)."""
import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from .config import settings


def _fernet(key: str | None = None) -> Fernet:
    # Fernet needs 32 url-safe base64 bytes; derive them from the configured secret.
    secret = (key if key is not None else settings.encryption_key).encode("utf-8")
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret).digest()))


def encrypt_value(value: str, key: str | None = None) -> str:
    return _fernet(key).encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_value(encrypted_value: str, key: str | None = None) -> str | None:
    """Plaintext, or None when the token was not produced with this key."""
    try:
        return _fernet(key).decrypt(encrypted_value.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        return None

"""Blob codecs for the key-value store.

Every persisted value (a profile, the family list, a history list) is one
JSON document. A codec turns that document into the text stored in SQLite
and back. ``EncryptedCodec`` wraps the JSON in a Fernet token so health
profiles and symptom notes are encrypted at rest; ``JsonCodec`` stores the
JSON as-is and is used when no encryption key is configured.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a blob cannot be encrypted or decrypted."""


class BlobCodec(Protocol):
    """Encodes JSON-serializable values to storable text and back."""

    def encode(self, value: Any) -> str: ...

    def decode(self, text: str) -> Any: ...


class JsonCodec:
    """Plain JSON text. Field names are preserved exactly as given."""

    def encode(self, value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))

    def decode(self, text: str) -> Any:
        if not text:
            return None
        return json.loads(text)


class EncryptedCodec:
    """Fernet-encrypted JSON.

    Usage::

        codec = EncryptedCodec(key=EncryptedCodec.generate_key())
        token = codec.encode({"name": "Ana"})
        codec.decode(token)  # {"name": "Ana"}
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        self._json = JsonCodec()

    def encode(self, value: Any) -> str:
        try:
            plaintext = self._json.encode(value).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Value is not JSON-serializable: {exc}") from exc
        return self._fernet.encrypt(plaintext).decode("utf-8")

    def decode(self, text: str) -> Any:
        if not text:
            return None
        try:
            plaintext = self._fernet.decrypt(text.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        return self._json.decode(plaintext.decode("utf-8"))

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("utf-8")


def create_codec(encryption_key: str = "") -> BlobCodec:
    """Pick the codec for the configured key: encrypted if set, plain otherwise."""
    if encryption_key:
        return EncryptedCodec(encryption_key)
    logger.info("No ENCRYPTION_KEY configured; storing blobs as plain JSON")
    return JsonCodec()

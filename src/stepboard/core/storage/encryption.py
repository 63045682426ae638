"""Fernet encryption for free-text fields stored in the step data bank.

Notes attached to manual step entries can carry personal details ("walked to
the clinic"), so they are encrypted before being written to SQLite. Step
counts and timestamps stay in the clear for indexed range queries.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a key is unusable or a token cannot be decrypted."""


class NoteCipher:
    """Encrypts and decrypts text with a Fernet key.

    Usage::

        cipher = NoteCipher(key="...")
        token = cipher.encrypt("walked to work")
        cipher.decrypt(token)  # "walked to work"

    Empty text maps to an empty token and back, so optional columns stay blank.
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A Fernet key string, see :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or malformed.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.strip().encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, text: str) -> str:
        if not text:
            return ""
        return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt a token produced by :meth:`encrypt`.

        Raises:
            EncryptionError: If the token was written with another key or is corrupt.
        """
        if not token:
            return ""
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("ascii")

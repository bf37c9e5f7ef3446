"""
Token encryption utilities.

Stored GitHub access tokens are encrypted with Fernet (AES-128).
Requires the ENCRYPTION_KEY environment variable
(generate with: Fernet.generate_key()).
"""

import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken

from config import settings

logger = logging.getLogger(__name__)


class TokenEncryption:
    """Handles encryption/decryption of stored access tokens."""

    def __init__(self, key: Optional[str] = None):
        self._cipher: Optional[Fernet] = None

        key = key if key is not None else settings.encryption_key
        if not key:
            logger.warning("ENCRYPTION_KEY not configured - stored GitHub tokens cannot be used")
            return

        try:
            self._cipher = Fernet(key.encode() if isinstance(key, str) else key)
            logger.info("Token encryption initialized successfully")
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to initialize token encryption: {e}")

    @property
    def is_configured(self) -> bool:
        return self._cipher is not None

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a token.

        Raises:
            RuntimeError: If no encryption key is configured
        """
        if not self._cipher:
            raise RuntimeError("Cannot store token: ENCRYPTION_KEY not configured")
        return self._cipher.encrypt(plaintext.encode()).decode()

    def decrypt(self, encrypted: str) -> Optional[str]:
        """
        Decrypt a stored token.

        Returns None when encryption is not configured or the value was not
        produced with the current key.
        """
        if not self._cipher:
            return None

        try:
            return self._cipher.decrypt(encrypted.encode()).decode()
        except InvalidToken:
            logger.warning("Stored token could not be decrypted with the current key")
            return None


# Global instance
_encryption_instance: Optional[TokenEncryption] = None


def get_token_encryption() -> TokenEncryption:
    """Get singleton token encryption instance."""
    global _encryption_instance
    if _encryption_instance is None:
        _encryption_instance = TokenEncryption()
    return _encryption_instance

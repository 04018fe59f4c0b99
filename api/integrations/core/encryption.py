"""
Token encryption at rest.

OAuth tokens are encrypted at the application layer (Fernet symmetric
encryption) before they are written to the credential table, and decrypted
when the credential store loads them.
"""

import os
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class TokenCipher:
    """
    Encrypts and decrypts stored OAuth tokens.

    Environment:
        INTEGRATION_ENCRYPTION_KEY: Base64-encoded 32-byte Fernet key
    """

    def __init__(self, encryption_key: Optional[str] = None):
        key = encryption_key or os.getenv("INTEGRATION_ENCRYPTION_KEY")

        if not key:
            raise ValueError(
                "INTEGRATION_ENCRYPTION_KEY environment variable is required. "
                "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
            )

        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        if plaintext is None:
            return None
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """
        Decrypt a stored token. Returns None for empty columns and for
        ciphertext that no longer decrypts (rotated key), which the token
        manager then treats as a missing credential.
        """
        if not ciphertext:
            return None
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("[CRYPTO] Stored token could not be decrypted (key rotated?)")
            return None


# Singleton instance
_token_cipher: Optional[TokenCipher] = None


def get_token_cipher() -> TokenCipher:
    """Get the global TokenCipher instance."""
    global _token_cipher
    if _token_cipher is None:
        _token_cipher = TokenCipher()
    return _token_cipher

"""Resolution of at-rest credentials with AES-256-GCM.

Ciphertext format is ``<iv hex>:<auth tag hex>:<ciphertext hex>`` with a
16-byte IV and a 32-character key, the format the surrounding application
stores connection secrets in.
"""

import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .constants import ENCRYPTION_IV_BYTES, ENCRYPTION_KEY_ENV, ENCRYPTION_KEY_LENGTH
from .errors import DecryptionError

TAG_BYTES = 16


class SecretResolver:
    """Decrypts connection secrets for the lifetime of one adapter.

    Callers must never log or cache what ``decrypt`` returns.
    """

    def __init__(self, key: str):
        """Initialize resolver.

        Args:
            key: Exactly 32 characters, used as the raw AES-256 key

        Raises:
            DecryptionError: If the key has the wrong length
        """
        if not key or len(key.encode("utf-8")) != ENCRYPTION_KEY_LENGTH:
            raise DecryptionError(
                f"Encryption key must be exactly {ENCRYPTION_KEY_LENGTH} characters long\n"
                f"  Hint: Generate one with: openssl rand -base64 24"
            )
        self._key = key.encode("utf-8")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "SecretResolver":
        """Build a resolver from the ENCRYPTION_KEY environment variable."""
        environ = os.environ if environ is None else environ
        key = environ.get(ENCRYPTION_KEY_ENV)
        if not key:
            raise DecryptionError(
                f"{ENCRYPTION_KEY_ENV} is not set\n"
                f"  Hint: Export the {ENCRYPTION_KEY_LENGTH}-character key used to encrypt credentials"
            )
        return cls(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext into the stored ``iv:tag:ciphertext`` form."""
        iv = os.urandom(ENCRYPTION_IV_BYTES)
        sealed = AESGCM(self._key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, encrypted_data: str) -> str:
        """Decrypt a stored secret.

        Args:
            encrypted_data: ``iv:tag:ciphertext``, each part hex encoded

        Returns:
            Plaintext secret

        Raises:
            DecryptionError: If the payload is malformed, tampered with, or
                was sealed with another key
        """
        parts = encrypted_data.split(":") if encrypted_data else []
        if len(parts) != 3:
            raise DecryptionError("Failed to decrypt data: invalid encrypted data format")

        try:
            iv = bytes.fromhex(parts[0])
            tag = bytes.fromhex(parts[1])
            ciphertext = bytes.fromhex(parts[2])
        except ValueError as e:
            raise DecryptionError("Failed to decrypt data: payload is not hex encoded") from e

        if len(iv) != ENCRYPTION_IV_BYTES or len(tag) != TAG_BYTES:
            raise DecryptionError("Failed to decrypt data: invalid IV or auth tag length")

        try:
            plaintext = AESGCM(self._key).decrypt(iv, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            raise DecryptionError(
                "Failed to decrypt data\n"
                "  Hint: The key differs from the one used to encrypt, or the data is corrupted"
            ) from e

"""
AES-GCM envelope encryption for provider credentials at rest.

Envelope format:

    v1:<base64(iv || ciphertext || tag)>

The version tag lets a future algorithm coexist with stored v1 values.
The vault does not rotate keys; rotation means re-encrypting every stored
envelope offline.
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from healthbridge.shared.errors import HealthBridgeError

logger = logging.getLogger(__name__)

VERSION_PREFIX = "v1:"
IV_LENGTH = 12  # 96-bit nonce, fresh per call


class VaultError(HealthBridgeError):
    """Base error for credential encryption."""

    status_code = 500
    public_message = "Stored credentials unreadable"

    def to_body(self) -> dict:
        # internal message stays in the logs
        return {"error": self.public_message}


class UnsupportedFormatError(VaultError):
    """Envelope has no known version tag."""


class DecryptionFailedError(VaultError):
    """Authentication failed: tampered envelope or wrong key."""


class CredentialVault:
    """
    Encrypts and decrypts provider tokens.

    Usage::

        vault = CredentialVault(key_b64=settings.google_fit_token_enc_key)
        stored = vault.encrypt("ya29.a0...")
        token = vault.decrypt(stored)
    """

    def __init__(self, key_b64: str):
        """
        Args:
            key_b64: Base64-encoded 128, 192 or 256-bit AES key.
                     Generate with ``CredentialVault.generate_key()``.

        Raises:
            VaultError: If the key is empty or has the wrong length.
        """
        if not key_b64 or not key_b64.strip():
            raise VaultError("Encryption key must not be empty")
        try:
            key = base64.b64decode(key_b64, validate=True)
            self._aesgcm = AESGCM(key)
        except (binascii.Error, ValueError) as exc:
            raise VaultError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token string into a versioned envelope."""
        iv = os.urandom(IV_LENGTH)
        ciphertext = self._aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
        return VERSION_PREFIX + base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, envelope: str) -> str:
        """
        Decrypt a versioned envelope.

        Raises:
            UnsupportedFormatError: Missing or unknown version tag
            DecryptionFailedError: Tampered data or wrong key
        """
        if not envelope or not envelope.startswith(VERSION_PREFIX):
            raise UnsupportedFormatError("Unsupported token format")

        try:
            combined = base64.b64decode(envelope[len(VERSION_PREFIX):], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecryptionFailedError("Decryption failed: malformed payload") from exc

        if len(combined) <= IV_LENGTH:
            raise DecryptionFailedError("Decryption failed: payload too short")

        iv, ciphertext = combined[:IV_LENGTH], combined[IV_LENGTH:]
        try:
            plaintext = self._aesgcm.decrypt(iv, ciphertext, None)
        except InvalidTag as exc:
            logger.warning("Credential envelope failed authentication")
            raise DecryptionFailedError("Decryption failed: invalid tag or wrong key") from exc

        return plaintext.decode("utf-8")

    @staticmethod
    def generate_key() -> str:
        """Generate a new base64-encoded 256-bit key."""
        return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")

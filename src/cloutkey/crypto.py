"""Cryptographic utilities for at-rest protection of seed hex.

Uses AES-256-GCM from the cryptography package. Every encryption draws a
fresh random 12-byte nonce; the stored value is

    hex(nonce || ciphertext || tag)

so decrypt() can recover all three parts. Nonces are never caller-supplied.
"""

import binascii
import logging
import os
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cloutkey.errors import DecryptionAuthFailure, KeyMaterialMalformed
from cloutkey.keystore.base import KEY_LENGTH, KeyStoreAdapter, new_encryption_key

logger = logging.getLogger(__name__)

NONCE_SIZE = 12  # 96 bits (recommended for GCM)
TAG_SIZE = 16

KeyLike = Union[bytes, bytearray, str]

__all__ = [
    "NONCE_SIZE",
    "TAG_SIZE",
    "SeedCipher",
    "get_seed_cipher",
    "new_encryption_key",
    "normalize_key",
]


def normalize_key(key: KeyLike) -> bytes:
    """Turn key material into exactly 32 raw bytes.

    Accepts raw bytes or a hex string (64 characters for a 32-byte key).

    Raises:
        KeyMaterialMalformed: If the key is not valid hex or not 32 bytes
    """
    if isinstance(key, str):
        try:
            key = bytes.fromhex(key)
        except ValueError as e:
            raise KeyMaterialMalformed("Encryption key is not valid hex") from e
    elif isinstance(key, (bytes, bytearray)):
        key = bytes(key)
    else:
        raise KeyMaterialMalformed(
            f"Encryption key must be bytes or hex, got {type(key).__name__}"
        )

    if len(key) != KEY_LENGTH:
        raise KeyMaterialMalformed(
            f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
        )
    return key


class SeedCipher:
    """Encrypts and decrypts seed hex with AES-256-GCM.

    Usage:
        cipher = SeedCipher(InMemoryKeyStore())
        encrypted = cipher.encrypt_for_origin(seed_hex, "example.com")
        seed_hex = cipher.decrypt_for_origin(encrypted, "example.com")

    encrypt()/decrypt() take the key directly; the *_for_origin variants
    fetch (or create) the origin's key from the key store first.
    """

    def __init__(self, key_store: KeyStoreAdapter):
        self.key_store = key_store

    def encryption_key(self, origin: str) -> bytes:
        """Get or create the origin's key and check its length.

        Raises:
            KeyMaterialMalformed: If the stored key is not 32 bytes
        """
        return normalize_key(self.key_store.get_or_create(origin))

    def encrypt(self, seed_hex: str, key: KeyLike) -> str:
        """Encrypt seed hex.

        Args:
            seed_hex: Seed (or private key) as a hex string
            key: 32-byte key, raw or hex

        Returns:
            Hex string of nonce || ciphertext || tag

        Raises:
            KeyMaterialMalformed: If the key is malformed (checked first)
        """
        aesgcm = AESGCM(normalize_key(key))
        nonce = os.urandom(NONCE_SIZE)
        sealed = aesgcm.encrypt(nonce, seed_hex.encode("utf-8"), None)
        return (nonce + sealed).hex()

    def decrypt(self, ciphertext_hex: str, key: KeyLike) -> str:
        """Decrypt and authenticate an encrypted seed.

        Raises:
            KeyMaterialMalformed: If the key is malformed (checked first)
            DecryptionAuthFailure: On wrong key, corrupted or truncated input
        """
        aesgcm = AESGCM(normalize_key(key))

        try:
            blob = binascii.unhexlify(ciphertext_hex)
        except (binascii.Error, TypeError, ValueError) as e:
            raise DecryptionAuthFailure("Encrypted seed is not valid hex") from e

        if len(blob) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionAuthFailure("Encrypted seed is too short")

        nonce, sealed = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            plaintext = aesgcm.decrypt(nonce, sealed, None)
        except InvalidTag as e:
            logger.warning("Rejected encrypted seed: authentication tag mismatch")
            raise DecryptionAuthFailure("Encrypted seed failed authentication") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionAuthFailure("Decrypted seed is not valid UTF-8") from e

    def encrypt_for_origin(self, seed_hex: str, origin: str) -> str:
        """Encrypt seed hex under the origin's key."""
        return self.encrypt(seed_hex, self.encryption_key(origin))

    def decrypt_for_origin(self, ciphertext_hex: str, origin: str) -> str:
        """Decrypt seed hex with the origin's key."""
        return self.decrypt(ciphertext_hex, self.encryption_key(origin))

    def rotate_key(self, old_key: KeyLike, new_key: KeyLike, ciphertext_hex: str) -> str:
        """Re-encrypt a seed under a new key.

        Both keys are validated before anything is decrypted.
        """
        normalize_key(new_key)
        return self.encrypt(self.decrypt(ciphertext_hex, old_key), new_key)


def get_seed_cipher() -> SeedCipher:
    """Get a SeedCipher using the key store configured in settings."""
    from cloutkey.keystore.factory import get_key_store

    return SeedCipher(get_key_store())

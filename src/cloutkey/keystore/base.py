"""Key store interface for per-origin symmetric encryption keys.

Each origin (e.g. the hostname of the app embedding the identity) owns one
32-byte key, stored as hex under ``seed-hex-key-{origin}``. The key is
created on first use and then kept for the lifetime of the origin: losing
or replacing it makes every seed encrypted under it unrecoverable.

Backends only implement raw string reads and writes, plus a storage-wide
transaction when their storage is shared. get_or_create() lives
here so the read-generate-write sequence is always done under the origin
lock and inside the transaction, whatever the backend.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from contextlib import nullcontext
from typing import ContextManager, Optional

from cloutkey.errors import KeyMaterialMalformed
from cloutkey.utils.locks import origin_lock

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
STORAGE_KEY_PREFIX = "seed-hex-key-"


def new_encryption_key() -> bytes:
    """Generate a new random 32-byte symmetric key."""
    return secrets.token_bytes(KEY_LENGTH)


def storage_key(origin: str) -> str:
    """Name of the slot holding an origin's key."""
    if not isinstance(origin, str) or not origin:
        raise ValueError("origin must be a non-empty string")
    return f"{STORAGE_KEY_PREFIX}{origin}"


class KeyStoreAdapter(ABC):
    """Abstract base class for symmetric key stores.

    Usage:
        store = InMemoryKeyStore()
        key = store.get_or_create("example.com")  # same 32 bytes on every call
    """

    def __init__(self, lock_timeout: Optional[float] = 10.0):
        self.lock_timeout = lock_timeout

    @abstractmethod
    def _read(self, name: str) -> Optional[str]:
        """Return the stored hex string for a slot, or None."""
        pass

    @abstractmethod
    def _write(self, name: str, value: str) -> None:
        """Persist a hex string under a slot name."""
        pass

    @abstractmethod
    def _remove(self, name: str) -> None:
        """Drop a slot if it exists."""
        pass

    def _transaction(self) -> ContextManager[None]:
        """Exclusive access to the backing storage for a read-modify-write.

        Backends whose storage is shared beyond this object override it.
        """
        return nullcontext()

    def get(self, origin: str) -> Optional[bytes]:
        """Get the stored key for an origin.

        Returns:
            Key bytes, or None if the origin has no key yet

        Raises:
            KeyMaterialMalformed: If the stored value is not valid hex
        """
        raw = self._read(storage_key(origin))
        if not raw:
            return None
        try:
            return bytes.fromhex(raw)
        except ValueError as e:
            raise KeyMaterialMalformed(f"Stored key for origin {origin} is not valid hex") from e

    def put(self, origin: str, key: bytes) -> None:
        """Store a key for an origin, replacing any existing one.

        Raises:
            KeyMaterialMalformed: If the key is not exactly 32 bytes
        """
        if len(key) != KEY_LENGTH:
            raise KeyMaterialMalformed(
                f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
            )
        name = storage_key(origin)
        with origin_lock(origin, timeout=self.lock_timeout, operation="put"), self._transaction():
            self._write(name, bytes(key).hex())
        logger.info(f"Stored encryption key for origin {origin}")

    def get_or_create(self, origin: str) -> bytes:
        """Return the origin's key, generating and persisting it on first use.

        Concurrent first calls for the same origin all get the same key.
        """
        name = storage_key(origin)
        with origin_lock(origin, timeout=self.lock_timeout, operation="get_or_create"), \
                self._transaction():
            key = self.get(origin)
            if key is None:
                key = new_encryption_key()
                self._write(name, key.hex())
                logger.info(f"Created encryption key for origin {origin}")
        return key

    def delete(self, origin: str) -> None:
        """Forget an origin's key. Seeds encrypted under it become unreadable."""
        name = storage_key(origin)
        with origin_lock(origin, timeout=self.lock_timeout, operation="delete"), self._transaction():
            self._remove(name)
        logger.warning(f"Deleted encryption key for origin {origin}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

"""Per-origin symmetric key storage."""

from cloutkey.keystore.base import KEY_LENGTH, KeyStoreAdapter, new_encryption_key
from cloutkey.keystore.factory import get_key_store, reset_key_store_cache
from cloutkey.keystore.file import FileKeyStore
from cloutkey.keystore.memory import InMemoryKeyStore

__all__ = [
    "KEY_LENGTH",
    "FileKeyStore",
    "InMemoryKeyStore",
    "KeyStoreAdapter",
    "get_key_store",
    "new_encryption_key",
    "reset_key_store_cache",
]

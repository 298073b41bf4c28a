"""Key store factory.

Selects the key store backend from settings. Instances are cached per
backend and path so every caller in the process sees the same keys.
"""

import logging
import threading
from typing import Optional

from cloutkey.config import Settings, get_settings
from cloutkey.keystore.base import KeyStoreAdapter
from cloutkey.keystore.file import FileKeyStore
from cloutkey.keystore.memory import InMemoryKeyStore

logger = logging.getLogger(__name__)

# Cache for key store instances
_store_cache: dict[tuple[str, str], KeyStoreAdapter] = {}
_cache_lock = threading.Lock()


def get_key_store(settings: Optional[Settings] = None) -> KeyStoreAdapter:
    """Get the key store configured in settings.

    Raises:
        ValueError: If the backend name is unknown
    """
    settings = settings or get_settings()
    backend = settings.key_store_backend.lower()
    timeout = settings.lock_timeout or None

    if backend == "memory":
        cache_key = ("memory", "")
    elif backend == "file":
        cache_key = ("file", str(settings.key_store_path.resolve()))
    else:
        raise ValueError(f"Unknown key store backend: {backend}")

    with _cache_lock:
        if cache_key in _store_cache:
            return _store_cache[cache_key]

        if backend == "memory":
            store: KeyStoreAdapter = InMemoryKeyStore(lock_timeout=timeout)
        else:
            store = FileKeyStore(settings.key_store_path, lock_timeout=timeout)

        _store_cache[cache_key] = store
    logger.debug(f"Using key store {store!r}")
    return store


def reset_key_store_cache() -> None:
    """Clear key store cache (useful for testing)."""
    with _cache_lock:
        _store_cache.clear()

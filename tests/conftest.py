"""Pytest configuration and fixtures."""

import os

import pytest

# Set test environment
os.environ["CLOUTKEY_ENVIRONMENT"] = "test"
os.environ["CLOUTKEY_NETWORK"] = "mainnet"
os.environ["CLOUTKEY_KEY_STORE_BACKEND"] = "memory"
os.environ["CLOUTKEY_DEBUG"] = "false"

from cloutkey.config import get_settings
from cloutkey.keystore.factory import reset_key_store_cache
from cloutkey.keystore.file import FileKeyStore
from cloutkey.keystore.memory import InMemoryKeyStore
from cloutkey.utils.locks import clear_origin_locks


@pytest.fixture(autouse=True)
def reset_state():
    """Clear process-wide caches before each test."""
    clear_origin_locks()
    reset_key_store_cache()
    get_settings.cache_clear()
    yield
    reset_key_store_cache()


@pytest.fixture
def memory_store() -> InMemoryKeyStore:
    return InMemoryKeyStore(lock_timeout=5.0)


@pytest.fixture
def file_store(tmp_path) -> FileKeyStore:
    return FileKeyStore(tmp_path / "keys" / "keystore.json", lock_timeout=5.0)

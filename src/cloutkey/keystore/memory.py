"""In-process key store.

Keys live only as long as the process. Suitable for tests and for
short-lived tools that encrypt and decrypt within one run.
"""

from typing import Optional

from cloutkey.keystore.base import KeyStoreAdapter


class InMemoryKeyStore(KeyStoreAdapter):
    """Key store backed by a plain dict."""

    def __init__(self, lock_timeout: Optional[float] = 10.0):
        super().__init__(lock_timeout=lock_timeout)
        self._slots: dict[str, str] = {}

    def _read(self, name: str) -> Optional[str]:
        return self._slots.get(name)

    def _write(self, name: str, value: str) -> None:
        self._slots[name] = value

    def _remove(self, name: str) -> None:
        self._slots.pop(name, None)

    def __len__(self) -> int:
        return len(self._slots)

"""JSON file key store.

All origins share one JSON document mapping slot names to hex keys. Writes
go through a temporary file in the same directory followed by os.replace(),
so a crash never leaves a half-written store behind.

Every read-modify-write holds an exclusive OS lock on ``<path>.lock``, so
several processes can share one store file without creating two keys for
an origin or dropping each other's slots.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from filelock import FileLock, Timeout

from cloutkey.keystore.base import KeyStoreAdapter
from cloutkey.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)

# Owner read/write only
SECURE_FILE_MODE = 0o600


def set_secure_permissions(filepath: Path) -> None:
    """Restrict a file to mode 0600 on POSIX systems.

    No-op on Windows (NTFS uses ACLs, not Unix permissions).
    """
    if os.name == "posix":
        os.chmod(filepath, SECURE_FILE_MODE)


class FileKeyStore(KeyStoreAdapter):
    """Key store persisted to a single JSON file.

    The origin lock serialises work on one origin. The transaction (a
    thread lock plus the ``<path>.lock`` file lock) serialises the
    whole-document read-modify-write across threads and processes.
    """

    def __init__(self, path: Union[str, Path], lock_timeout: Optional[float] = 10.0):
        super().__init__(lock_timeout=lock_timeout)
        self._path = Path(path)
        self._thread_lock = threading.RLock()
        self._process_lock = FileLock(
            str(self.lock_path), timeout=lock_timeout if lock_timeout else -1
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._path.with_name(f"{self._path.name}.lock")

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._thread_lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            try:
                self._process_lock.acquire()
            except Timeout as e:
                logger.warning(f"Lock timeout on key store {self._path} after {self.lock_timeout}s")
                raise LockTimeoutError(
                    f"Could not lock key store {self._path} within {self.lock_timeout}s"
                ) from e
            try:
                yield
            finally:
                self._process_lock.release()

    def _read(self, name: str) -> Optional[str]:
        return self._read_all().get(name)

    def _write(self, name: str, value: str) -> None:
        with self._transaction():
            slots = self._read_all()
            slots[name] = value
            self._write_all(slots)

    def _remove(self, name: str) -> None:
        with self._transaction():
            slots = self._read_all()
            if slots.pop(name, None) is not None:
                self._write_all(slots)

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"Key store {self._path} does not contain a JSON object")
        return data

    def _write_all(self, slots: dict[str, str]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(slots, f, indent=2, sort_keys=True)
            set_secure_permissions(tmp_path)
            os.replace(tmp_path, self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(slots)} key slot(s) to {self._path}")

    def __repr__(self) -> str:
        return f"FileKeyStore(path={str(self._path)!r})"

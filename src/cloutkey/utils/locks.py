"""Concurrency control for per-origin key creation.

Provides per-origin locking so that get-or-create on a key store never
produces two different keys for the same origin.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

# Global lock registry: origin -> threading.Lock
_origin_locks: dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def get_origin_lock(origin: str) -> threading.Lock:
    """Get or create the lock for a specific origin.

    Args:
        origin: Origin identifier (e.g. a hostname)

    Returns:
        threading.Lock shared by every caller using the same origin
    """
    with _registry_lock:
        if origin not in _origin_locks:
            _origin_locks[origin] = threading.Lock()
        return _origin_locks[origin]


class OriginLock:
    """Context manager for exclusive access to an origin's key slot.

    Example:
        with OriginLock("example.com", operation="get_or_create"):
            key = store.get(origin)
            if key is None:
                store.put(origin, new_key)
    """

    def __init__(
        self,
        origin: str,
        timeout: Optional[float] = 10.0,
        operation: str = "key_operation",
    ):
        """Initialize the lock.

        Args:
            origin: Origin identifier
            timeout: Maximum time to wait for lock (None or 0 = wait forever)
            operation: Description of the operation for logging
        """
        self.origin = origin
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[threading.Lock] = None
        self._acquired = False

    def __enter__(self) -> "OriginLock":
        """Acquire the lock."""
        self._lock = get_origin_lock(self.origin)

        if self.timeout:
            self._acquired = self._lock.acquire(timeout=self.timeout)
        else:
            self._acquired = self._lock.acquire()

        if not self._acquired:
            logger.warning(
                f"Lock timeout for origin {self.origin} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                f"Could not acquire lock for origin {self.origin} within {self.timeout}s"
            )

        logger.debug(f"Lock acquired for origin {self.origin}: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Release the lock."""
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Lock released for origin {self.origin}: {self.operation}")
        return False


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


@contextmanager
def origin_lock(
    origin: str,
    timeout: Optional[float] = 10.0,
    operation: str = "key_operation",
) -> Iterator[None]:
    """Functional context manager for origin locking.

    Example:
        with origin_lock(origin, operation="get_or_create"):
            # Atomic read-generate-write here
            pass
    """
    with OriginLock(origin, timeout=timeout, operation=operation):
        yield


def clear_origin_locks() -> None:
    """Clear all origin locks (useful for testing)."""
    with _registry_lock:
        _origin_locks.clear()

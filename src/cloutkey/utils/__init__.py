"""Utility modules for cloutkey."""

from cloutkey.utils.locks import LockTimeoutError, clear_origin_locks, origin_lock
from cloutkey.utils.varint import decode_varint, encode_varint

__all__ = [
    "LockTimeoutError",
    "clear_origin_locks",
    "decode_varint",
    "encode_varint",
    "origin_lock",
]

"""Little-endian base-128 integer encoding (unsigned varint)."""


def encode_varint(n: int) -> bytes:
    """Encode a non-negative integer, 7 bits per byte, low group first.

    Every byte except the last has its high bit set.

    Raises:
        ValueError: If n is negative or not an integer
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise ValueError(f"varint value must be an int, got: {type(n).__name__}")
    if n < 0:
        raise ValueError(f"varint value must be non-negative, got: {n}")

    result = bytearray()
    while n >= 0x80:
        result.append((n & 0x7F) | 0x80)
        n >>= 7
    result.append(n)
    return bytes(result)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint starting at offset.

    Returns:
        Tuple of (value, offset of the first byte after the varint)

    Raises:
        ValueError: If the input ends before the final byte
    """
    value = 0
    shift = 0
    pos = offset
    while pos < len(data):
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7
    raise ValueError(f"Truncated varint at offset {offset}")

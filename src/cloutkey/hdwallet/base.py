"""HD key types and derivation path parsing.

Key material is held in frozen dataclasses for the duration of a derivation
call only. Private keys and chain codes are excluded from ``repr`` so they
never end up in logs or tracebacks.
"""

from dataclasses import dataclass, field

from cloutkey.errors import InvalidDerivationPath

HARDENED_OFFSET = 0x80000000
HARDENED_MARKERS = ("'", "h", "H")

# BIP44 path: m/purpose'/coin_type'/account'/change/address_index
DERIVATION_PATH = "m/44'/0'/0'/0/0"


@dataclass(frozen=True)
class PathSegment:
    """One level of a derivation path."""

    index: int
    hardened: bool = False

    @property
    def child_index(self) -> int:
        """Index as serialized into the child key derivation (ser32)."""
        return self.index + HARDENED_OFFSET if self.hardened else self.index

    def __str__(self) -> str:
        return f"{self.index}'" if self.hardened else str(self.index)


@dataclass(frozen=True)
class MasterKey:
    """Root of the derivation tree.

    Attributes:
        private_key: 32-byte secp256k1 private key
        chain_code: 32-byte chain code
    """

    private_key: bytes = field(repr=False)
    chain_code: bytes = field(repr=False)
    depth: int = 0
    index: int = 0
    parent_fingerprint: bytes = b"\x00\x00\x00\x00"


@dataclass(frozen=True)
class DerivedKey:
    """Key at the end of a derivation path.

    Attributes:
        private_key: 32-byte secp256k1 private key
        chain_code: 32-byte chain code
        path: Path this key was derived at (e.g. "m/44'/0'/0'/0/0")
        depth: Number of derivation steps from the master key
        index: Child index of the last step (hardened offset included)
        parent_fingerprint: First 4 bytes of the parent's identifier
        public_key: 33-byte compressed public key
        identifier: hash160 of the compressed public key (20 bytes)
    """

    private_key: bytes = field(repr=False)
    chain_code: bytes = field(repr=False)
    path: str
    depth: int
    index: int
    parent_fingerprint: bytes
    public_key: bytes
    identifier: bytes

    @property
    def fingerprint(self) -> bytes:
        return self.identifier[:4]


def parse_path(path: str) -> tuple[PathSegment, ...]:
    """Parse a derivation path string into segments.

    Accepts "m" followed by zero or more "/index" parts; an index may carry
    a hardened marker (', h or H).

    Raises:
        InvalidDerivationPath: If the path or any segment is malformed
    """
    if not isinstance(path, str):
        raise InvalidDerivationPath(str(path), "path must be a string")

    parts = path.strip().split("/")
    if parts[0] != "m":
        raise InvalidDerivationPath(path, "path must start with 'm'")

    segments = []
    for part in parts[1:]:
        hardened = part.endswith(HARDENED_MARKERS)
        digits = part[:-1] if hardened else part

        # isdigit() also accepts non-ASCII digits, which int() would parse
        if not digits or not digits.isascii() or not digits.isdigit():
            raise InvalidDerivationPath(path, f"malformed segment '{part}'")

        index = int(digits)
        if index >= HARDENED_OFFSET:
            raise InvalidDerivationPath(path, f"index {index} does not fit in 31 bits")

        segments.append(PathSegment(index=index, hardened=hardened))

    return tuple(segments)


def format_path(segments: tuple[PathSegment, ...]) -> str:
    """Render segments back into canonical "m/44'/0'" form."""
    return "/".join(["m"] + [str(segment) for segment in segments])

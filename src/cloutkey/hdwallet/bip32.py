"""Mnemonic to HD key derivation (BIP39 seed, BIP32 private derivation).

Derivation chain:
    mnemonic (+ passphrase) -> 64-byte seed -> master key -> m/44'/0'/0'/0/0

Mnemonic validation and generation use the bip_utils BIP39 wordlists.
The seed stretching and BIP32 child derivation are done directly with
hashlib/hmac, with ecdsa providing secp256k1 point multiplication.

Every function here is deterministic except generate_mnemonic().
"""

import hashlib
import hmac
import logging
import struct
import unicodedata
from typing import Union

from bip_utils import (
    Bip39Languages,
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39WordsNum,
)
from ecdsa import SECP256k1, SigningKey

from cloutkey.errors import (
    InvalidDerivationPath,
    InvalidMnemonic,
    InvalidSeed,
    KeyMaterialMalformed,
)
from cloutkey.hdwallet.base import (
    DERIVATION_PATH,
    DerivedKey,
    MasterKey,
    PathSegment,
    format_path,
    parse_path,
)

logger = logging.getLogger(__name__)

CURVE_ORDER = SECP256k1.order
MASTER_HMAC_KEY = b"Bitcoin seed"
PBKDF2_ROUNDS = 2048
SEED_LENGTH = 64
MIN_SEED_LENGTH = 16
PRIVATE_KEY_LENGTH = 32

AnyKey = Union[MasterKey, DerivedKey]


def _nfkd(text: str) -> str:
    return unicodedata.normalize("NFKD", text)


def normalize_mnemonic(mnemonic: str) -> str:
    """NFKD-normalize a mnemonic and collapse runs of whitespace."""
    if not isinstance(mnemonic, str):
        raise InvalidMnemonic("Mnemonic must be a string")
    return " ".join(_nfkd(mnemonic).split())


def validate_mnemonic(mnemonic: str) -> bool:
    """Check a mnemonic against the English wordlist and its checksum."""
    try:
        normalized = normalize_mnemonic(mnemonic)
    except InvalidMnemonic:
        return False
    if not normalized:
        return False
    return Bip39MnemonicValidator(Bip39Languages.ENGLISH).IsValid(normalized)


def generate_mnemonic(words: int = 12) -> str:
    """Generate a fresh random English mnemonic.

    Args:
        words: Number of words (12, 15, 18, 21 or 24)

    Raises:
        ValueError: If the word count is not supported
    """
    try:
        words_num = Bip39WordsNum(words)
    except ValueError as e:
        raise ValueError(f"Unsupported mnemonic length: {words} words") from e
    return Bip39MnemonicGenerator(Bip39Languages.ENGLISH).FromWordsNumber(words_num).ToStr()


def derive_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """Convert a mnemonic to a 64-byte seed using PBKDF2-HMAC-SHA512.

    Salt is "mnemonic" + passphrase, both NFKD-normalized as BIP39 requires.

    Raises:
        InvalidMnemonic: If the mnemonic fails wordlist or checksum validation
    """
    normalized = normalize_mnemonic(mnemonic)
    if not validate_mnemonic(normalized):
        raise InvalidMnemonic("Mnemonic failed wordlist or checksum validation")

    salt = ("mnemonic" + _nfkd(passphrase or "")).encode("utf-8")
    return hashlib.pbkdf2_hmac("sha512", normalized.encode("utf-8"), salt, PBKDF2_ROUNDS)


def derive_master_key(seed: bytes) -> MasterKey:
    """Derive the master private key and chain code from a seed.

    Raises:
        InvalidSeed: If the seed length is outside 16..64 bytes, or the
            resulting key is not a valid secp256k1 scalar
    """
    if not MIN_SEED_LENGTH <= len(seed) <= SEED_LENGTH:
        raise InvalidSeed(
            f"Seed must be {MIN_SEED_LENGTH}-{SEED_LENGTH} bytes, got {len(seed)}"
        )

    digest = hmac.new(MASTER_HMAC_KEY, seed, hashlib.sha512).digest()
    private_key, chain_code = digest[:32], digest[32:]

    if not 0 < int.from_bytes(private_key, "big") < CURVE_ORDER:
        raise InvalidSeed("Seed produces an invalid master key")

    return MasterKey(private_key=private_key, chain_code=chain_code)


def compressed_public_key(private_key: bytes) -> bytes:
    """Multiply the secp256k1 base point by a private key.

    Returns:
        33-byte compressed point (0x02/0x03 prefix + x coordinate)

    Raises:
        KeyMaterialMalformed: If the key is not a 32-byte scalar in [1, n)
    """
    _check_private_key(private_key)
    signing_key = SigningKey.from_string(private_key, curve=SECP256k1)
    return signing_key.get_verifying_key().to_string("compressed")


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))."""
    sha256 = hashlib.sha256(data).digest()
    return hashlib.new("ripemd160", sha256).digest()


def _check_private_key(private_key: bytes) -> None:
    if len(private_key) != PRIVATE_KEY_LENGTH:
        raise KeyMaterialMalformed(
            f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key)}"
        )
    if not 0 < int.from_bytes(private_key, "big") < CURVE_ORDER:
        raise KeyMaterialMalformed("Private key is outside the secp256k1 scalar range")


def _derive_step(
    private_key: bytes, chain_code: bytes, segment: PathSegment
) -> tuple[bytes, bytes]:
    """Private parent key -> private child key (BIP32 CKDpriv)."""
    if segment.hardened:
        data = b"\x00" + private_key + struct.pack(">I", segment.child_index)
    else:
        data = compressed_public_key(private_key) + struct.pack(">I", segment.child_index)

    digest = hmac.new(chain_code, data, hashlib.sha512).digest()

    tweak = int.from_bytes(digest[:32], "big")
    if tweak >= CURVE_ORDER:
        raise ValueError("tweak out of range")

    child = (tweak + int.from_bytes(private_key, "big")) % CURVE_ORDER
    if child == 0:
        raise ValueError("child key is zero")

    return child.to_bytes(32, "big"), digest[32:]


def derive_child(master_key: AnyKey, path: str = DERIVATION_PATH) -> DerivedKey:
    """Derive the private child key at path.

    Args:
        master_key: Key to start from (normally the master key)
        path: Derivation path, hardened segments marked with '

    Raises:
        InvalidDerivationPath: If a segment is malformed, or a segment
            yields an invalid key (probability below 2^-127)
    """
    segments = parse_path(path)
    canonical = format_path(segments)

    private_key = master_key.private_key
    chain_code = master_key.chain_code
    depth = master_key.depth
    index = master_key.index
    parent_fingerprint = master_key.parent_fingerprint

    for segment in segments:
        parent_fingerprint = hash160(compressed_public_key(private_key))[:4]
        try:
            private_key, chain_code = _derive_step(private_key, chain_code, segment)
        except ValueError as e:
            raise InvalidDerivationPath(canonical, f"segment {segment} is unusable: {e}") from e
        depth += 1
        index = segment.child_index

    public_key = compressed_public_key(private_key)
    logger.debug(f"Derived key at {canonical} (depth {depth})")

    return DerivedKey(
        private_key=private_key,
        chain_code=chain_code,
        path=canonical,
        depth=depth,
        index=index,
        parent_fingerprint=parent_fingerprint,
        public_key=public_key,
        identifier=hash160(public_key),
    )


def scalar(key: AnyKey) -> int:
    """Private key as an integer, guaranteed to be in [1, n)."""
    _check_private_key(key.private_key)
    return int.from_bytes(key.private_key, "big")


def public_point(key: AnyKey) -> bytes:
    """33-byte compressed public key for a master or derived key."""
    return compressed_public_key(key.private_key)


def identifier(key: AnyKey) -> bytes:
    """hash160 of the compressed public key (20 bytes)."""
    return hash160(public_point(key))


def fingerprint(key: AnyKey) -> bytes:
    """First 4 bytes of the key identifier."""
    return identifier(key)[:4]


def mnemonic_to_keychain(mnemonic: str, passphrase: str = "") -> DerivedKey:
    """Run the full chain: mnemonic -> seed -> master key -> m/44'/0'/0'/0/0."""
    seed = derive_seed(mnemonic, passphrase)
    return derive_child(derive_master_key(seed), DERIVATION_PATH)

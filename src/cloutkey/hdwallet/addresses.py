"""Base58Check address encoding for the primary (BitClout) and legacy (Bitcoin) coins.

Primary addresses carry the full 33-byte compressed public key behind a
3-byte prefix. Legacy addresses are P2PKH: a 1-byte version followed by
the 20-byte hash160 of the public key.

Prefix table:

    network | primary    | legacy
    mainnet | CD 14 00   | 00
    testnet | 11 C2 00   | 6F
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

import base58

from cloutkey.errors import InvalidAddress, UnsupportedNetwork

logger = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 33
IDENTIFIER_LENGTH = 20


class Network(str, Enum):
    """Network the address is meant for."""
    MAINNET = "mainnet"
    TESTNET = "testnet"


class CoinProfile(str, Enum):
    """Which coin's address format to produce."""
    PRIMARY = "primary"   # BitClout public key
    LEGACY = "legacy"     # Bitcoin P2PKH


NetworkLike = Union[Network, str]
ProfileLike = Union[CoinProfile, str]

PAYLOAD_LENGTHS = {
    CoinProfile.PRIMARY: PUBLIC_KEY_LENGTH,
    CoinProfile.LEGACY: IDENTIFIER_LENGTH,
}


def coerce_network(network: NetworkLike) -> Network:
    try:
        return Network(network.lower() if isinstance(network, str) else network)
    except ValueError:
        raise UnsupportedNetwork(network) from None


def _coerce_profile(network: NetworkLike, profile: ProfileLike) -> CoinProfile:
    try:
        return CoinProfile(profile.lower() if isinstance(profile, str) else profile)
    except ValueError:
        raise UnsupportedNetwork(network, profile) from None


@dataclass(frozen=True)
class AddressPrefixes:
    """Immutable (network, coin profile) -> prefix bytes table."""

    table: Mapping[tuple[Network, CoinProfile], bytes] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only private copy
        object.__setattr__(self, "table", MappingProxyType(dict(self.table)))

    def get(self, network: NetworkLike, profile: ProfileLike) -> bytes:
        """Look up a prefix.

        Raises:
            UnsupportedNetwork: If the pair is not in the table
        """
        key = (coerce_network(network), _coerce_profile(network, profile))
        try:
            return self.table[key]
        except KeyError:
            raise UnsupportedNetwork(network, profile) from None


DEFAULT_PREFIXES = AddressPrefixes(
    {
        (Network.MAINNET, CoinProfile.PRIMARY): bytes([0xCD, 0x14, 0x00]),
        (Network.MAINNET, CoinProfile.LEGACY): bytes([0x00]),
        (Network.TESTNET, CoinProfile.PRIMARY): bytes([0x11, 0xC2, 0x00]),
        (Network.TESTNET, CoinProfile.LEGACY): bytes([0x6F]),
    }
)


class AddressEncoder:
    """Encodes public key material into network-specific addresses.

    Usage:
        encoder = AddressEncoder()
        encoder.encode_primary(keychain.public_key, Network.MAINNET)  # "BC1YL..."
        encoder.encode_legacy(keychain.identifier, "testnet")         # "m..." / "n..."
    """

    def __init__(self, prefixes: AddressPrefixes = DEFAULT_PREFIXES):
        self.prefixes = prefixes

    def prefix(self, network: NetworkLike, profile: ProfileLike) -> bytes:
        return self.prefixes.get(network, profile)

    def encode_primary(self, public_key: bytes, network: NetworkLike) -> str:
        """Encode a 33-byte compressed public key as a primary-coin address."""
        prefix = self.prefix(network, CoinProfile.PRIMARY)
        if len(public_key) != PUBLIC_KEY_LENGTH:
            raise ValueError(
                f"Expected a {PUBLIC_KEY_LENGTH}-byte compressed public key, "
                f"got {len(public_key)} bytes"
            )
        if public_key[0] not in (2, 3):
            raise ValueError(
                f"Expected a compressed public key prefix 02 or 03, got {public_key[0]:02x}"
            )
        return base58.b58encode_check(prefix + bytes(public_key)).decode()

    def encode_legacy(self, identifier: bytes, network: NetworkLike) -> str:
        """Encode a 20-byte hash160 identifier as a legacy P2PKH address."""
        prefix = self.prefix(network, CoinProfile.LEGACY)
        if len(identifier) != IDENTIFIER_LENGTH:
            raise ValueError(
                f"Expected a {IDENTIFIER_LENGTH}-byte identifier, got {len(identifier)} bytes"
            )
        return base58.b58encode_check(prefix + bytes(identifier)).decode()

    def decode(self, address: str, network: NetworkLike, profile: ProfileLike) -> bytes:
        """Verify an address and return its payload (prefix stripped).

        Raises:
            UnsupportedNetwork: If the pair is not in the table
            InvalidAddress: On bad Base58, bad checksum, a prefix mismatch
                or a payload of the wrong length
        """
        prefix = self.prefix(network, profile)
        expected_length = PAYLOAD_LENGTHS[_coerce_profile(network, profile)]
        try:
            raw = base58.b58decode_check(address)
        except ValueError as e:
            raise InvalidAddress(f"Invalid Base58Check address: {e}") from e

        if not raw.startswith(prefix):
            raise InvalidAddress(
                f"Address prefix {raw[:len(prefix)].hex()} does not match "
                f"{coerce_network(network).value}/{_coerce_profile(network, profile).value}"
            )

        payload = raw[len(prefix):]
        if len(payload) != expected_length:
            raise InvalidAddress(
                f"Address payload is {len(payload)} bytes, expected {expected_length}"
            )
        return payload

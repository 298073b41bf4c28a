"""HD wallet module: mnemonic key derivation and address encoding."""

from cloutkey.hdwallet.addresses import (
    DEFAULT_PREFIXES,
    AddressEncoder,
    AddressPrefixes,
    CoinProfile,
    Network,
)
from cloutkey.hdwallet.base import DERIVATION_PATH, DerivedKey, MasterKey, PathSegment
from cloutkey.hdwallet.bip32 import (
    derive_child,
    derive_master_key,
    derive_seed,
    generate_mnemonic,
    identifier,
    mnemonic_to_keychain,
    public_point,
    scalar,
    validate_mnemonic,
)

__all__ = [
    "DEFAULT_PREFIXES",
    "DERIVATION_PATH",
    "AddressEncoder",
    "AddressPrefixes",
    "CoinProfile",
    "DerivedKey",
    "MasterKey",
    "Network",
    "PathSegment",
    "derive_child",
    "derive_master_key",
    "derive_seed",
    "generate_mnemonic",
    "identifier",
    "mnemonic_to_keychain",
    "public_point",
    "scalar",
    "validate_mnemonic",
]

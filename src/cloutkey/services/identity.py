"""Identity service.

Joins key derivation, address encoding and seed encryption into the
operations an identity front end needs:

- derive the keychain for a mnemonic at m/44'/0'/0'/0/0
- turn it into "seed hex" (the derived private key as hex) for storage
- encrypt/decrypt that seed hex under the per-origin key
- render the BitClout public key and the Bitcoin address
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from cloutkey.config import get_settings
from cloutkey.crypto import SeedCipher
from cloutkey.errors import KeyMaterialMalformed
from cloutkey.hdwallet.addresses import AddressEncoder, Network, NetworkLike, coerce_network
from cloutkey.hdwallet.base import DerivedKey
from cloutkey.hdwallet.bip32 import compressed_public_key, mnemonic_to_keychain
from cloutkey.keystore.base import KeyStoreAdapter
from cloutkey.keystore.factory import get_key_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrivateKey:
    """secp256k1 key pair restored from seed hex."""

    private_key: bytes = field(repr=False)
    public_key: bytes

    @property
    def scalar(self) -> int:
        return int.from_bytes(self.private_key, "big")


@dataclass(frozen=True)
class Identity:
    """Everything a new identity needs to be stored and shown."""

    public_key: str          # BitClout public key (primary address)
    btc_address: str         # Bitcoin P2PKH address for the same key
    encrypted_seed_hex: str
    network: Network


class IdentityService:
    """Derives, encrypts and encodes identity keys for one network.

    Usage:
        service = IdentityService(InMemoryKeyStore(), network="mainnet")
        identity = service.create_identity(mnemonic, origin="example.com")
        key = service.encrypted_seed_hex_to_private_key(
            identity.encrypted_seed_hex, "example.com"
        )
    """

    def __init__(
        self,
        key_store: KeyStoreAdapter,
        encoder: Optional[AddressEncoder] = None,
        network: NetworkLike = Network.MAINNET,
    ):
        self.cipher = SeedCipher(key_store)
        self.encoder = encoder or AddressEncoder()
        self.network = coerce_network(network)

    def mnemonic_to_keychain(self, mnemonic: str, extra_text: str = "") -> DerivedKey:
        """Derive the keychain at m/44'/0'/0'/0/0."""
        return mnemonic_to_keychain(mnemonic, extra_text)

    def keychain_to_seed_hex(self, keychain: DerivedKey) -> str:
        return keychain.private_key.hex()

    def seed_hex_to_private_key(self, seed_hex: str) -> PrivateKey:
        """Restore the key pair from seed hex.

        Raises:
            KeyMaterialMalformed: If seed_hex is not a valid 32-byte scalar
        """
        try:
            private_key = bytes.fromhex(seed_hex)
        except (TypeError, ValueError) as e:
            raise KeyMaterialMalformed("Seed hex is not valid hex") from e
        return PrivateKey(private_key=private_key, public_key=compressed_public_key(private_key))

    def encrypt_seed_hex(self, seed_hex: str, origin: str) -> str:
        return self.cipher.encrypt_for_origin(seed_hex, origin)

    def decrypt_seed_hex(self, encrypted_seed_hex: str, origin: str) -> str:
        return self.cipher.decrypt_for_origin(encrypted_seed_hex, origin)

    def encrypted_seed_hex_to_private_key(self, encrypted_seed_hex: str, origin: str) -> PrivateKey:
        seed_hex = self.decrypt_seed_hex(encrypted_seed_hex, origin)
        return self.seed_hex_to_private_key(seed_hex)

    def private_key_to_public_key(self, private_key: PrivateKey) -> str:
        """BitClout public key (primary address) for a key pair."""
        return self.encoder.encode_primary(private_key.public_key, self.network)

    def keychain_to_btc_address(self, keychain: DerivedKey) -> str:
        """Bitcoin P2PKH address for a keychain."""
        return self.encoder.encode_legacy(keychain.identifier, self.network)

    def create_identity(self, mnemonic: str, origin: str, extra_text: str = "") -> Identity:
        """Derive a keychain and return its addresses and encrypted seed hex."""
        keychain = self.mnemonic_to_keychain(mnemonic, extra_text)
        seed_hex = self.keychain_to_seed_hex(keychain)

        identity = Identity(
            public_key=self.encoder.encode_primary(keychain.public_key, self.network),
            btc_address=self.keychain_to_btc_address(keychain),
            encrypted_seed_hex=self.encrypt_seed_hex(seed_hex, origin),
            network=self.network,
        )
        logger.info(f"Created identity {identity.public_key} for origin {origin}")
        return identity


def get_identity_service() -> IdentityService:
    """Get an IdentityService using the configured key store and network."""
    settings = get_settings()
    return IdentityService(get_key_store(settings), network=settings.network)

"""Error kinds raised by key derivation, address encoding and seed encryption.

Every failure here is either malformed caller input or an integrity
violation. None of them is transient, so nothing in the package retries.
"""


class CloutKeyError(Exception):
    """Base class for all cloutkey errors."""

    pass


class InvalidMnemonic(CloutKeyError):
    """Raised when a mnemonic fails wordlist or checksum validation."""

    pass


class InvalidSeed(InvalidMnemonic):
    """Raised when seed bytes cannot produce a usable master key."""

    pass


class InvalidDerivationPath(CloutKeyError):
    """Raised when a derivation path segment is malformed or unusable."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid derivation path '{path}': {reason}")


class KeyMaterialMalformed(CloutKeyError):
    """Raised when a symmetric or private key does not have the expected shape."""

    pass


class DecryptionAuthFailure(CloutKeyError):
    """Raised when ciphertext does not authenticate under the given key."""

    pass


class UnsupportedNetwork(CloutKeyError):
    """Raised when a (network, coin profile) pair has no address prefix."""

    def __init__(self, network: object, profile: object = None):
        self.network = network
        self.profile = profile
        if profile is None:
            message = f"Unsupported network: {network!r}"
        else:
            message = f"Unsupported network/profile: {network!r}/{profile!r}"
        super().__init__(message)


class InvalidAddress(CloutKeyError):
    """Raised when an address fails its checksum or carries the wrong prefix."""

    pass

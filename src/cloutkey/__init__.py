"""cloutkey - mnemonic key derivation, address encoding and seed encryption."""

__version__ = "0.1.0"

"""Command line entry point.

Usage:
    cloutkey generate --words 24
    cloutkey derive --network testnet          # prompts for the mnemonic
    echo "abandon ... about" | cloutkey derive
    cloutkey encrypt <seed_hex> --origin example.com
    cloutkey decrypt <encrypted_seed_hex> --origin example.com
"""

import argparse
import logging
import sys
from getpass import getpass
from typing import Optional, Sequence

from cloutkey.config import get_settings
from cloutkey.errors import CloutKeyError
from cloutkey.hdwallet.bip32 import generate_mnemonic
from cloutkey.keystore.factory import get_key_store
from cloutkey.services.identity import IdentityService
from cloutkey.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _read_mnemonic() -> str:
    if sys.stdin.isatty():
        return getpass("Enter your recovery phrase: ")
    return sys.stdin.readline()


def _build_service(network: Optional[str]) -> IdentityService:
    settings = get_settings()
    return IdentityService(get_key_store(settings), network=network or settings.network)


def cmd_generate(args: argparse.Namespace) -> int:
    print(generate_mnemonic(args.words))
    return 0


def cmd_derive(args: argparse.Namespace) -> int:
    service = _build_service(args.network)
    keychain = service.mnemonic_to_keychain(_read_mnemonic(), args.passphrase)
    private_key = service.seed_hex_to_private_key(service.keychain_to_seed_hex(keychain))

    print(f"Network:     {service.network.value}")
    print(f"Path:        {keychain.path}")
    print(f"Public key:  {service.private_key_to_public_key(private_key)}")
    print(f"BTC address: {service.keychain_to_btc_address(keychain)}")
    print(f"Identifier:  {keychain.identifier.hex()}")
    return 0


def cmd_encrypt(args: argparse.Namespace) -> int:
    service = _build_service(None)
    print(service.encrypt_seed_hex(args.seed_hex, args.origin))
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    service = _build_service(None)
    print(service.decrypt_seed_hex(args.encrypted_seed_hex, args.origin))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloutkey",
        description="Derive identity keys from a mnemonic and protect seed hex at rest.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Generate a new mnemonic")
    generate.add_argument("--words", type=int, default=12, choices=[12, 15, 18, 21, 24])
    generate.set_defaults(func=cmd_generate)

    derive = sub.add_parser("derive", help="Derive addresses for a mnemonic read from stdin")
    derive.add_argument("--passphrase", default="", help="Optional BIP39 passphrase")
    derive.add_argument("--network", choices=["mainnet", "testnet"], default=None)
    derive.set_defaults(func=cmd_derive)

    encrypt = sub.add_parser("encrypt", help="Encrypt seed hex under an origin's key")
    encrypt.add_argument("seed_hex")
    encrypt.add_argument("--origin", required=True)
    encrypt.set_defaults(func=cmd_encrypt)

    decrypt = sub.add_parser("decrypt", help="Decrypt seed hex with an origin's key")
    decrypt.add_argument("encrypted_seed_hex")
    decrypt.add_argument("--origin", required=True)
    decrypt.set_defaults(func=cmd_decrypt)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        return args.func(args)
    except (CloutKeyError, LockTimeoutError) as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

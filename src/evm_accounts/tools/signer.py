#!/usr/bin/env python3
"""Claim signing tool — produce and check signatures for account claims.

    # EVM address controlled by a secret key
    python -m evm_accounts.tools.signer address <secret_hex>

    # Sign a claim of <account_hex> (what a wallet would sign)
    python -m evm_accounts.tools.signer sign <secret_hex> <account_hex>

    # Recover the address that signed a claim of <account_hex>
    python -m evm_accounts.tools.signer recover <signature_hex> <account_hex>

    # Fallback account used by an address before it is claimed
    python -m evm_accounts.tools.signer derive <evm_address>
"""

from __future__ import annotations

import sys

from evm_accounts.evm.address import AccountId, EcdsaSignature, EvmAddress, default_account_id
from evm_accounts.evm.signature import eth_address, eth_recover, eth_sign
from evm_accounts.utils.crypto import to_ascii_hex


def _secret(value: str) -> bytes:
    text = value[2:] if value[:2] in ("0x", "0X") else value
    return bytes.fromhex(text)


def _cmd_address(secret_hex: str) -> None:
    """Print the checksummed address for a secret key."""
    print(eth_address(_secret(secret_hex)).to_checksum())


def _cmd_sign(secret_hex: str, account_hex: str) -> None:
    """Print the claim signature and the address that produced it."""
    secret = _secret(secret_hex)
    account = AccountId.from_hex(account_hex)
    signature = eth_sign(secret, account.data)
    print(f"Account:    {account.hex()}")
    print(f"Address:    {eth_address(secret).to_checksum()}")
    print(f"Signature:  {signature.hex()}")


def _cmd_recover(signature_hex: str, account_hex: str) -> None:
    """Print the address recovered from a claim signature."""
    signature = EcdsaSignature.from_hex(signature_hex)
    account = AccountId.from_hex(account_hex)
    address = eth_recover(signature, to_ascii_hex(account.data))
    if address is None:
        print("Signature does not recover to any address")
        sys.exit(1)
    print(address.to_checksum())


def _cmd_derive(address_hex: str) -> None:
    """Print the fallback account synthesized for an unclaimed address."""
    print(default_account_id(EvmAddress.from_hex(address_hex)).hex())


_USAGE = {
    "address": ("address <secret_hex>", 1),
    "sign": ("sign <secret_hex> <account_hex>", 2),
    "recover": ("recover <signature_hex> <account_hex>", 2),
    "derive": ("derive <evm_address>", 1),
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0].lower()
    if cmd not in _USAGE:
        print(f"Unknown command: {cmd}")
        print(__doc__)
        sys.exit(1)

    usage, arity = _USAGE[cmd]
    if len(args) - 1 < arity:
        print(f"Usage: signer {usage}")
        sys.exit(1)

    try:
        if cmd == "address":
            _cmd_address(args[1])
        elif cmd == "sign":
            _cmd_sign(args[1], args[2])
        elif cmd == "recover":
            _cmd_recover(args[1], args[2])
        else:
            _cmd_derive(args[1])
    except ValueError as err:
        print(f"Error: {err}")
        sys.exit(1)


if __name__ == "__main__":
    main()

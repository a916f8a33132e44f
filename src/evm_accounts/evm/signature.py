"""Ethereum signed-message construction, signing, and address recovery.

The message layout mirrors what the ``personal_sign`` / ``eth_sign`` RPCs
sign, with a fixed chain tag in front of the payload::

    "\\x19Ethereum Signed Message:\\n" ‖ len(tag‖payload‖extra) ‖ tag ‖ payload ‖ extra

The length is written as decimal ASCII without leading zeros. Any deviation
breaks interoperability with external wallets.
"""

from __future__ import annotations

from evm_accounts.evm.address import EcdsaSignature, EvmAddress, public_key_to_address
from evm_accounts.evm.keys import (
    private_key_to_public_key,
    recover_public_key,
    sign_recoverable,
)
from evm_accounts.utils.crypto import keccak256, to_ascii_hex

ETHEREUM_MESSAGE_HEADER = b"\x19Ethereum Signed Message:\n"
SIGNING_PREFIX = b"acala evm:"


def _decimal_ascii(n: int) -> bytes:
    """Render a non-negative length as decimal digits by repeated division."""
    digits = bytearray()
    while n > 0:
        n, remainder = divmod(n, 10)
        digits.append(ord("0") + remainder)
    digits.reverse()
    return bytes(digits)


def ethereum_signable_message(what: bytes, extra: bytes = b"") -> bytes:
    """Construct the exact byte string an Ethereum wallet signs."""
    length = len(SIGNING_PREFIX) + len(what) + len(extra)
    return ETHEREUM_MESSAGE_HEADER + _decimal_ascii(length) + SIGNING_PREFIX + what + extra


def eth_recover(signature: EcdsaSignature, what: bytes, extra: bytes = b"") -> EvmAddress | None:
    """Recover the signer's address from a message signature.

    Returns ``None`` when the signature is malformed or recovery fails;
    that is an expected outcome for untrusted input, not an error.
    """
    message_hash = keccak256(ethereum_signable_message(what, extra))
    public_key = recover_public_key(signature.rs, signature.recovery_id, message_hash)
    if public_key is None:
        return None
    return public_key_to_address(public_key)


def eth_public(secret: bytes) -> bytes:
    """64-byte raw public key for a secret key."""
    return private_key_to_public_key(secret)


def eth_address(secret: bytes) -> EvmAddress:
    """EVM address controlled by a secret key."""
    return public_key_to_address(eth_public(secret))


def eth_sign(secret: bytes, what: bytes, extra: bytes = b"") -> EcdsaSignature:
    """Sign ``what`` the way a wallet signs a human-readable claim payload.

    The payload is ASCII-hex encoded before being framed, so that
    ``eth_recover(eth_sign(k, what), to_ascii_hex(what))`` yields
    ``eth_address(k)``.
    """
    message_hash = keccak256(ethereum_signable_message(to_ascii_hex(what), extra))
    rs, recovery_id = sign_recoverable(secret, message_hash)
    return EcdsaSignature.from_parts(rs, recovery_id)

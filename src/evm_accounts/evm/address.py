"""Fixed-width identifiers — EVM addresses, native account ids, signatures.

Provides:
- ``EvmAddress`` — 20-byte foreign address with EIP-55 checksum display
- ``AccountId`` — 32-byte native account identity
- ``EcdsaSignature`` — 65-byte ``r‖s‖v`` recoverable signature
- ``default_account_id`` — the synthesized ``evm:`` fallback account rule
- ``public_key_to_address`` — Keccak-256 address derivation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Self

from evm_accounts.utils.crypto import keccak256

EVM_ADDRESS_SIZE = 20
ACCOUNT_ID_SIZE = 32
SIGNATURE_SIZE = 65

# Tag marking an account id synthesized from an EVM address
DEFAULT_ACCOUNT_TAG = b"evm:"

# Wallets (eth_sign / personal_sign) emit v as 27 + recovery id
_WALLET_V_OFFSET = 27


def _strip_hex(value: str) -> bytes:
    """Decode a hex string with an optional ``0x`` prefix."""
    text = value.strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    return bytes.fromhex(text)


def _check_width(name: str, data: bytes, size: int) -> None:
    if len(data) != size:
        msg = f"Invalid {name} length: {len(data)} (expected {size})"
        raise ValueError(msg)


@dataclass(frozen=True)
class EvmAddress:
    """A 20-byte EVM address. Compared byte-for-byte; carries no ordering."""

    ZERO: ClassVar[EvmAddress]

    data: bytes

    def __post_init__(self) -> None:
        _check_width("EVM address", self.data, EVM_ADDRESS_SIZE)

    @classmethod
    def from_hex(cls, value: str) -> Self:
        """Parse ``0x``-prefixed (or bare) hex, any letter case."""
        return cls(_strip_hex(value))

    def hex(self) -> str:
        """Lowercase ``0x``-prefixed hex."""
        return "0x" + self.data.hex()

    def to_checksum(self) -> str:
        """EIP-55 mixed-case checksum encoding."""
        lower = self.data.hex()
        digest = keccak256(lower.encode("ascii")).hex()
        chars = [
            c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
            for i, c in enumerate(lower)
        ]
        return "0x" + "".join(chars)

    def __str__(self) -> str:
        return self.to_checksum()


EvmAddress.ZERO = EvmAddress(b"\x00" * EVM_ADDRESS_SIZE)


@dataclass(frozen=True)
class AccountId:
    """A 32-byte native account identity."""

    data: bytes

    def __post_init__(self) -> None:
        _check_width("account id", self.data, ACCOUNT_ID_SIZE)

    @classmethod
    def from_hex(cls, value: str) -> Self:
        return cls(_strip_hex(value))

    def hex(self) -> str:
        return "0x" + self.data.hex()

    def __str__(self) -> str:
        return self.hex()


@dataclass(frozen=True)
class EcdsaSignature:
    """A 65-byte recoverable signature: 64 bytes ``r‖s`` then the recovery byte.

    Equality is structural; signatures have no ordering.
    """

    data: bytes

    def __post_init__(self) -> None:
        _check_width("signature", self.data, SIGNATURE_SIZE)

    @classmethod
    def from_hex(cls, value: str) -> Self:
        return cls(_strip_hex(value))

    @classmethod
    def from_parts(cls, rs: bytes, recovery_id: int) -> Self:
        """Build from a 64-byte ``r‖s`` and a recovery id."""
        return cls(bytes(rs) + bytes([recovery_id]))

    @property
    def rs(self) -> bytes:
        return self.data[:64]

    @property
    def recovery_id(self) -> int:
        """Recovery id, accepting both raw (0-3) and wallet (27-30) forms."""
        v = self.data[64]
        return v - _WALLET_V_OFFSET if v >= _WALLET_V_OFFSET else v

    def hex(self) -> str:
        return "0x" + self.data.hex()

    def __repr__(self) -> str:
        return f"EcdsaSignature({self.hex()})"


# ---------------------------------------------------------------------------
# Derivation rules
# ---------------------------------------------------------------------------


def public_key_to_address(raw_pubkey: bytes) -> EvmAddress:
    """Derive an EVM address: low 20 bytes of Keccak-256(x‖y).

    Args:
        raw_pubkey: 64-byte uncompressed public key without the 0x04 prefix.
    """
    if len(raw_pubkey) == 65 and raw_pubkey[0] == 0x04:
        raw_pubkey = raw_pubkey[1:]
    _check_width("raw public key", raw_pubkey, 64)
    return EvmAddress(keccak256(raw_pubkey)[12:])


def default_account_id(address: EvmAddress) -> AccountId:
    """Synthesize the fallback account for an unclaimed address.

    Layout: ``b"evm:"`` ‖ 20 address bytes ‖ 8 zero bytes. Pure and total,
    so every observer computes the same account without coordination.
    """
    data = DEFAULT_ACCOUNT_TAG + address.data
    return AccountId(data.ljust(ACCOUNT_ID_SIZE, b"\x00"))

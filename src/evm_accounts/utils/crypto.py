"""Cryptographic helpers — Keccak-256 hashing, ASCII hex encoding."""

from __future__ import annotations

from Crypto.Hash import keccak

_HEX_DIGITS = b"0123456789abcdef"


def keccak256(data: bytes) -> bytes:
    """Keccak-256 hash (the pre-standard SHA-3 variant used by Ethereum)."""
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def to_ascii_hex(data: bytes) -> bytes:
    """Encode binary data as lowercase ASCII hex, twice the input length."""
    out = bytearray()
    for byte in data:
        out.append(_HEX_DIGITS[byte // 16])
        out.append(_HEX_DIGITS[byte % 16])
    return bytes(out)

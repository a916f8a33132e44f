"""secp256k1 keys and recoverable ECDSA signatures.

Implements the key operations behind Ethereum-style account proofs:
- Secret key → 64-byte raw public key (x‖y, no 0x04 prefix)
- Deterministic (RFC 6979), low-s signing with a recovery id
- Public key recovery from (r, s, recovery id) and a 32-byte digest
"""

from __future__ import annotations

import hashlib

from ecdsa import SECP256k1, SigningKey
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.numbertheory import inverse_mod
from ecdsa.util import sigencode_string_canonize

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CURVE = SECP256k1
_CURVE_ORDER = _CURVE.order
_CURVE_GEN = _CURVE.generator
_FIELD_P = _CURVE.curve.p()

RAW_SIGNATURE_SIZE = 64
SECRET_KEY_SIZE = 32


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------


def validate_secret_key(privkey_bytes: bytes) -> None:
    """Ensure a secret key is a 32-byte scalar in ``[1, n)``.

    Raises:
        ValueError: If the key has the wrong length or is out of range.
    """
    if len(privkey_bytes) != SECRET_KEY_SIZE:
        msg = f"Invalid secret key length: {len(privkey_bytes)}"
        raise ValueError(msg)
    scalar = int.from_bytes(privkey_bytes, "big")
    if not 0 < scalar < _CURVE_ORDER:
        msg = "Secret key out of range"
        raise ValueError(msg)


def private_key_to_public_key(privkey_bytes: bytes) -> bytes:
    """Derive the 64-byte raw public key (x‖y) from a 32-byte secret key."""
    validate_secret_key(privkey_bytes)
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    return sk.get_verifying_key().to_string()


# ---------------------------------------------------------------------------
# Recoverable signatures
# ---------------------------------------------------------------------------


def sign_recoverable(privkey_bytes: bytes, message_hash: bytes) -> tuple[bytes, int]:
    """Sign a 32-byte digest, returning ``(r‖s, recovery_id)``.

    The nonce is derived per RFC 6979 and ``s`` is normalized to the lower
    half of the curve order, so the output is deterministic and matches
    what libsecp256k1 produces for the same key and digest.
    """
    validate_secret_key(privkey_bytes)
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    rs = sk.sign_digest_deterministic(
        message_hash,
        hashfunc=hashlib.sha256,
        sigencode=sigencode_string_canonize,
    )
    public_key = sk.get_verifying_key().to_string()
    for recovery_id in range(4):
        if recover_public_key(rs, recovery_id, message_hash) == public_key:
            return rs, recovery_id
    msg = "Unable to determine recovery id"
    raise ValueError(msg)


def recover_public_key(signature: bytes, recovery_id: int, message_hash: bytes) -> bytes | None:
    """Recover the 64-byte raw public key that produced ``signature``.

    Args:
        signature: 64-byte big-endian ``r‖s``.
        recovery_id: 0-3; bit 0 selects the parity of R.y, bit 1 selects
            ``R.x = r + n``.
        message_hash: The 32-byte digest that was signed.

    Returns:
        The public key, or ``None`` if the inputs do not describe a valid
        signature for any key.
    """
    if len(signature) != RAW_SIGNATURE_SIZE or not 0 <= recovery_id <= 3:
        return None
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    if not (0 < r < _CURVE_ORDER and 0 < s < _CURVE_ORDER):
        return None

    x = r + (recovery_id >> 1) * _CURVE_ORDER
    if x >= _FIELD_P:
        return None

    # y^2 = x^3 + 7  (mod p)
    alpha = (pow(x, 3, _FIELD_P) + 7) % _FIELD_P
    beta = pow(alpha, (_FIELD_P + 1) // 4, _FIELD_P)
    if beta * beta % _FIELD_P != alpha:
        return None
    y = beta if beta % 2 == recovery_id & 1 else _FIELD_P - beta

    big_r = PointJacobi(_CURVE.curve, x, y, 1, _CURVE_ORDER)
    e = int.from_bytes(message_hash, "big") % _CURVE_ORDER
    r_inv = inverse_mod(r, _CURVE_ORDER)

    # Q = r^-1 (sR - eG)
    point = big_r * (s * r_inv % _CURVE_ORDER) + _CURVE_GEN * (-e * r_inv % _CURVE_ORDER)
    if point == INFINITY:
        return None
    return point.x().to_bytes(32, "big") + point.y().to_bytes(32, "big")

"""
NCN Vote Anti-Rogue-Key Mixer

Derives the scalar that binds the G1 and G2 aggregate keys together in the
aggregate pairing equation.
"""

from __future__ import annotations
import hashlib

from ncnvote.constants import G1_POINT_SIZE, G2_POINT_SIZE, SCALAR_SIZE
from ncnvote.core.bn254 import CURVE_ORDER
from ncnvote.errors import InvalidInputLengthError


def compute_alpha(
    message_hash: bytes,
    aggregate_signature: bytes,
    apk1: bytes,
    apk2: bytes,
) -> bytes:
    """
    Compute alpha = SHA-256(H(m) || sigma || APK1 || APK2) mod r.

    Args:
        message_hash: 64-byte uncompressed H(m)
        aggregate_signature: 64-byte uncompressed aggregate signature
        apk1: 64-byte uncompressed G1 aggregate key of the signers
        apk2: 128-byte uncompressed G2 aggregate key

    Returns:
        bytes: 32-byte big-endian scalar
    """
    for field, value, size in (
        ("message_hash", message_hash, G1_POINT_SIZE),
        ("aggregate_signature", aggregate_signature, G1_POINT_SIZE),
        ("apk1", apk1, G1_POINT_SIZE),
        ("apk2", apk2, G2_POINT_SIZE),
    ):
        if len(value) != size:
            raise InvalidInputLengthError(field, len(value), size)

    hasher = hashlib.sha256()
    hasher.update(message_hash)
    hasher.update(aggregate_signature)
    hasher.update(apk1)
    hasher.update(apk2)
    alpha = int.from_bytes(hasher.digest(), "big") % CURVE_ORDER
    return alpha.to_bytes(SCALAR_SIZE, "big")

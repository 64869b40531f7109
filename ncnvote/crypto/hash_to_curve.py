"""
NCN Vote Hash-to-Curve

Deterministic try-and-increment map from a message to a G1 point.

For each counter byte n the scheme hashes message || n, reduces the digest
modulo the field prime and tries it as a compressed x-coordinate with the
sign flag clear. The first candidate that decompresses wins.
"""

from __future__ import annotations
import hashlib
import logging
from typing import Dict, Optional, Type, Union

from ncnvote.constants import (
    DEFAULT_HASH_SCHEME,
    FIELD_ELEMENT_SIZE,
    HASH_SCHEME_SHA256,
    HASH_SCHEME_SHA256_NORMALIZED,
    HASH_TO_CURVE_MAX_ATTEMPTS,
    NORMALIZE_MODULUS_MULTIPLIER,
)
from ncnvote.core.bn254 import FIELD_MODULUS
from ncnvote.core.types import G1CompressedPoint, G1Point
from ncnvote.errors import DecompressionError, HashToCurveError, InvalidParameterError

logger = logging.getLogger(__name__)

NORMALIZE_MODULUS: int = FIELD_MODULUS * NORMALIZE_MODULUS_MULTIPLIER


class HashToCurve:
    """
    Base try-and-increment scheme.

    Subclasses provide the digest and may refuse digests before reduction.
    """

    name: str = ""
    max_attempts: int = HASH_TO_CURVE_MAX_ATTEMPTS

    def digest(self, message: bytes, n: int) -> bytes:
        raise NotImplementedError

    def accepts(self, value: int) -> bool:
        return True

    def try_hash_to_curve(self, message: Union[bytes, bytearray]) -> G1Point:
        """
        Map a message to a G1 point.

        Args:
            message: Arbitrary message bytes

        Returns:
            G1Point: First candidate that lies on the curve

        Raises:
            HashToCurveError: No candidate decompressed within max_attempts
        """
        message = bytes(message)
        for n in range(self.max_attempts):
            value = int.from_bytes(self.digest(message, n), "big")
            if not self.accepts(value):
                continue
            x = value % FIELD_MODULUS
            try:
                point = G1CompressedPoint(x.to_bytes(FIELD_ELEMENT_SIZE, "big")).decompress()
            except DecompressionError:
                continue
            logger.debug(f"{self.name} mapped message after {n + 1} attempt(s)")
            return point

        raise HashToCurveError(self.name, self.max_attempts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Sha256(HashToCurve):
    """SHA-256(message || n) without a normalization bound."""

    name = HASH_SCHEME_SHA256

    def digest(self, message: bytes, n: int) -> bytes:
        return hashlib.sha256(message + bytes([n])).digest()


class Sha256Normalized(Sha256):
    """
    SHA-256(message || n), skipping digests at or above 5 * p.

    5p < 2^256 < 6p, so every accepted digest reduces into [0, p) from one
    of exactly five equal ranges.
    """

    name = HASH_SCHEME_SHA256_NORMALIZED

    def accepts(self, value: int) -> bool:
        return value < NORMALIZE_MODULUS


SCHEMES: Dict[str, Type[HashToCurve]] = {
    HASH_SCHEME_SHA256: Sha256,
    HASH_SCHEME_SHA256_NORMALIZED: Sha256Normalized,
}


def get_scheme(name: str = DEFAULT_HASH_SCHEME) -> HashToCurve:
    """Instantiate a hash-to-curve scheme by name."""
    try:
        return SCHEMES[name]()
    except KeyError:
        raise InvalidParameterError("hash_scheme", f"unknown scheme {name!r}") from None


DEFAULT_SCHEME: HashToCurve = get_scheme()


def try_hash_to_curve(
    message: Union[bytes, bytearray],
    scheme: Optional[HashToCurve] = None,
) -> G1Point:
    """Hash a message to G1 with the given scheme (default: normalized SHA-256)."""
    return (scheme or DEFAULT_SCHEME).try_hash_to_curve(message)

"""
NCN Vote Core Curve Layer

alt_bn128 byte-level primitives and the point/scalar types built on them.
"""

from ncnvote.core.bn254 import (
    AltBN128Error,
    CURVE_ORDER,
    FIELD_MODULUS,
    alt_bn128_addition,
    alt_bn128_multiplication,
    alt_bn128_pairing,
    alt_bn128_g1_compress,
    alt_bn128_g1_decompress,
    alt_bn128_g2_compress,
    alt_bn128_g2_decompress,
)
from ncnvote.core.types import (
    G1Point,
    G1CompressedPoint,
    G2Point,
    G2CompressedPoint,
    PrivKey,
)

__all__ = [
    # Primitives
    "AltBN128Error",
    "CURVE_ORDER",
    "FIELD_MODULUS",
    "alt_bn128_addition",
    "alt_bn128_multiplication",
    "alt_bn128_pairing",
    "alt_bn128_g1_compress",
    "alt_bn128_g1_decompress",
    "alt_bn128_g2_compress",
    "alt_bn128_g2_decompress",
    # Types
    "G1Point",
    "G1CompressedPoint",
    "G2Point",
    "G2CompressedPoint",
    "PrivKey",
]

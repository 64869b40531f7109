"""
NCN Vote alt_bn128 Primitives

Byte-level BN254 operations with the alt_bn128 precompile encodings:

    G1 uncompressed:  x || y                          (64 bytes)
    G2 uncompressed:  x.c1 || x.c0 || y.c1 || y.c0    (128 bytes)
    G1 compressed:    x                               (32 bytes)
    G2 compressed:    x.c1 || x.c0                    (64 bytes)

All field elements are 32-byte big-endian. The all-zero uncompressed
encoding is the point at infinity. Compressed encodings carry two flags in
the top bits of the first byte: 0x80 selects the lexicographically larger y
and 0x40 marks infinity, which is never accepted here.

Curve arithmetic is delegated to py_ecc.optimized_bn128.
"""

from __future__ import annotations
import logging
from typing import Any, Optional, Tuple

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    G1,
    G2,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    field_modulus,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    normalize,
    pairing,
)

from ncnvote.constants import (
    ALT_BN128_ADDITION_INPUT_SIZE,
    ALT_BN128_MULTIPLICATION_INPUT_SIZE,
    ALT_BN128_PAIRING_ELEMENT_SIZE,
    COMPRESSION_FLAG_INFINITY,
    COMPRESSION_FLAG_MASK,
    COMPRESSION_FLAG_NEGATIVE_Y,
    FIELD_ELEMENT_SIZE,
    G1_COMPRESSED_POINT_SIZE,
    G1_POINT_SIZE,
    G2_COMPRESSED_POINT_SIZE,
    G2_POINT_SIZE,
    PAIRING_FAILURE,
    PAIRING_SUCCESS,
)

logger = logging.getLogger(__name__)

FIELD_MODULUS: int = field_modulus
CURVE_ORDER: int = curve_order

_FQ2_I = FQ2([0, 1])
_FQ2_MINUS_ONE = FQ2([field_modulus - 1, 0])


class AltBN128Error(ValueError):
    """Malformed input to an alt_bn128 operation."""


# ==============================================================================
# FIELD HELPERS
# ==============================================================================

def _int(coeff: Any) -> int:
    return int(getattr(coeff, "n", coeff)) % field_modulus


def _read_field_element(data: bytes, offset: int) -> int:
    value = int.from_bytes(data[offset:offset + FIELD_ELEMENT_SIZE], "big")
    if value >= field_modulus:
        raise AltBN128Error("field element not below modulus")
    return value


def _field_bytes(value: int) -> bytes:
    return value.to_bytes(FIELD_ELEMENT_SIZE, "big")


def _fq_sqrt(a: int) -> Optional[int]:
    """Square root in Fp, p = 3 mod 4."""
    root = pow(a, (field_modulus + 1) // 4, field_modulus)
    if root * root % field_modulus != a % field_modulus:
        return None
    return root


def _fq2_sqrt(a: FQ2) -> Optional[FQ2]:
    """
    Square root in Fp2 = Fp[i]/(i^2 + 1) for p = 3 mod 4.

    Returns None when a is not a quadratic residue.
    """
    if a == FQ2.zero():
        return a
    a1 = a ** ((field_modulus - 3) // 4)
    alpha = a1 * a1 * a
    x0 = a1 * a
    if alpha == _FQ2_MINUS_ONE:
        root = _FQ2_I * x0
    else:
        root = (FQ2.one() + alpha) ** ((field_modulus - 1) // 2) * x0
    if root * root != a:
        return None
    return root


def _fq_is_larger(y: int) -> bool:
    return y > (field_modulus - y) % field_modulus


def _fq2_is_larger(y: FQ2) -> bool:
    c0, c1 = (_int(c) for c in y.coeffs)
    neg_c0 = (field_modulus - c0) % field_modulus
    neg_c1 = (field_modulus - c1) % field_modulus
    return (c1, c0) > (neg_c1, neg_c0)


# ==============================================================================
# POINT ENCODING
# ==============================================================================

def decode_g1(data: bytes) -> Tuple[FQ, FQ, FQ]:
    """
    Decode a 64-byte G1 point into projective coordinates.

    Raises:
        AltBN128Error: Wrong length, unreduced coordinate or point off curve
    """
    if len(data) != G1_POINT_SIZE:
        raise AltBN128Error(f"G1 point must be {G1_POINT_SIZE} bytes")
    x = _read_field_element(data, 0)
    y = _read_field_element(data, 32)
    if x == 0 and y == 0:
        return Z1
    point = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(point, b):
        raise AltBN128Error("G1 point not on curve")
    return point


def encode_g1(point) -> bytes:
    if is_inf(point):
        return bytes(G1_POINT_SIZE)
    x, y = normalize(point)
    return _field_bytes(_int(x)) + _field_bytes(_int(y))


def decode_g2(data: bytes) -> Tuple[FQ2, FQ2, FQ2]:
    """
    Decode a 128-byte G2 point into projective coordinates.

    Raises:
        AltBN128Error: Wrong length, unreduced coordinate, point off the
            twist or outside the prime-order subgroup
    """
    if len(data) != G2_POINT_SIZE:
        raise AltBN128Error(f"G2 point must be {G2_POINT_SIZE} bytes")
    x_c1 = _read_field_element(data, 0)
    x_c0 = _read_field_element(data, 32)
    y_c1 = _read_field_element(data, 64)
    y_c0 = _read_field_element(data, 96)
    if not any((x_c1, x_c0, y_c1, y_c0)):
        return Z2
    point = (FQ2([x_c0, x_c1]), FQ2([y_c0, y_c1]), FQ2.one())
    if not is_on_curve(point, b2):
        raise AltBN128Error("G2 point not on curve")
    if not is_inf(multiply(point, curve_order)):
        raise AltBN128Error("G2 point not in subgroup")
    return point


def encode_g2(point) -> bytes:
    if is_inf(point):
        return bytes(G2_POINT_SIZE)
    x, y = normalize(point)
    x_c0, x_c1 = (_int(c) for c in x.coeffs)
    y_c0, y_c1 = (_int(c) for c in y.coeffs)
    return b"".join(_field_bytes(v) for v in (x_c1, x_c0, y_c1, y_c0))


G1_GENERATOR_BYTES: bytes = encode_g1(G1)
G2_GENERATOR_BYTES: bytes = encode_g2(G2)
G2_MINUS_ONE_BYTES: bytes = encode_g2(neg(G2))


# ==============================================================================
# ARITHMETIC
# ==============================================================================

def alt_bn128_addition(data: bytes) -> bytes:
    """
    Add two G1 points.

    Args:
        data: 128 bytes, two uncompressed G1 points

    Returns:
        64-byte sum (all zero for infinity)
    """
    if len(data) != ALT_BN128_ADDITION_INPUT_SIZE:
        raise AltBN128Error(
            f"addition input must be {ALT_BN128_ADDITION_INPUT_SIZE} bytes"
        )
    p1 = decode_g1(data[:G1_POINT_SIZE])
    p2 = decode_g1(data[G1_POINT_SIZE:])
    return encode_g1(add(p1, p2))


def alt_bn128_multiplication(data: bytes) -> bytes:
    """
    Multiply a G1 point by a scalar.

    Args:
        data: 96 bytes, uncompressed G1 point then 32-byte big-endian scalar

    Returns:
        64-byte product (all zero for infinity)
    """
    if len(data) != ALT_BN128_MULTIPLICATION_INPUT_SIZE:
        raise AltBN128Error(
            f"multiplication input must be {ALT_BN128_MULTIPLICATION_INPUT_SIZE} bytes"
        )
    point = decode_g1(data[:G1_POINT_SIZE])
    scalar = int.from_bytes(data[G1_POINT_SIZE:], "big") % curve_order
    return encode_g1(multiply(point, scalar))


def alt_bn128_g2_addition(data: bytes) -> bytes:
    """Add two 128-byte G2 points."""
    if len(data) != 2 * G2_POINT_SIZE:
        raise AltBN128Error(f"G2 addition input must be {2 * G2_POINT_SIZE} bytes")
    q1 = decode_g2(data[:G2_POINT_SIZE])
    q2 = decode_g2(data[G2_POINT_SIZE:])
    return encode_g2(add(q1, q2))


def alt_bn128_g2_multiplication(data: bytes) -> bytes:
    """Multiply a 128-byte G2 point by a 32-byte big-endian scalar."""
    if len(data) != G2_POINT_SIZE + 32:
        raise AltBN128Error(f"G2 multiplication input must be {G2_POINT_SIZE + 32} bytes")
    point = decode_g2(data[:G2_POINT_SIZE])
    scalar = int.from_bytes(data[G2_POINT_SIZE:], "big") % curve_order
    return encode_g2(multiply(point, scalar))


def alt_bn128_pairing(data: bytes) -> bytes:
    """
    Check that the product of pairings over all (G1, G2) pairs is one.

    Args:
        data: n * 192 bytes, each element a 64-byte G1 point followed by a
            128-byte G2 point

    Returns:
        PAIRING_SUCCESS if the product is the identity, else PAIRING_FAILURE

    Raises:
        AltBN128Error: Malformed length or any invalid point
    """
    if len(data) % ALT_BN128_PAIRING_ELEMENT_SIZE != 0:
        raise AltBN128Error(
            f"pairing input must be a multiple of {ALT_BN128_PAIRING_ELEMENT_SIZE} bytes"
        )

    accumulator = FQ12.one()
    for offset in range(0, len(data), ALT_BN128_PAIRING_ELEMENT_SIZE):
        p = decode_g1(data[offset:offset + G1_POINT_SIZE])
        q = decode_g2(data[offset + G1_POINT_SIZE:offset + ALT_BN128_PAIRING_ELEMENT_SIZE])
        if is_inf(p) or is_inf(q):
            continue
        accumulator = accumulator * pairing(q, p, final_exponentiate=False)

    if final_exponentiate(accumulator) == FQ12.one():
        return PAIRING_SUCCESS
    return PAIRING_FAILURE


# ==============================================================================
# COMPRESSION
# ==============================================================================

def alt_bn128_g1_compress(data: bytes) -> bytes:
    """Compress a 64-byte G1 point to 32 bytes."""
    point = decode_g1(data)
    if is_inf(point):
        raise AltBN128Error("cannot compress G1 infinity")
    x = int.from_bytes(data[:32], "big")
    y = int.from_bytes(data[32:], "big")
    out = bytearray(_field_bytes(x))
    if _fq_is_larger(y):
        out[0] |= COMPRESSION_FLAG_NEGATIVE_Y
    return bytes(out)


def alt_bn128_g1_decompress(data: bytes) -> bytes:
    """
    Decompress a 32-byte G1 point.

    Raises:
        AltBN128Error: Wrong length, infinity or all-zero input, x not below
            the modulus, or x not the abscissa of a curve point
    """
    if len(data) != G1_COMPRESSED_POINT_SIZE:
        raise AltBN128Error(f"compressed G1 point must be {G1_COMPRESSED_POINT_SIZE} bytes")
    if not any(data):
        raise AltBN128Error("all-zero compressed G1 point")

    flags = data[0] & COMPRESSION_FLAG_MASK
    if flags & COMPRESSION_FLAG_INFINITY:
        raise AltBN128Error("compressed G1 infinity")

    x = int.from_bytes(bytes([data[0] & ~COMPRESSION_FLAG_MASK & 0xFF]) + data[1:], "big")
    if x >= field_modulus:
        raise AltBN128Error("x not below modulus")

    rhs = (pow(x, 3, field_modulus) + _int(b)) % field_modulus
    y = _fq_sqrt(rhs)
    if y is None:
        raise AltBN128Error("x is not on curve")
    if _fq_is_larger(y) != bool(flags & COMPRESSION_FLAG_NEGATIVE_Y):
        y = (field_modulus - y) % field_modulus
    return _field_bytes(x) + _field_bytes(y)


def alt_bn128_g2_compress(data: bytes) -> bytes:
    """Compress a 128-byte G2 point to 64 bytes."""
    point = decode_g2(data)
    if is_inf(point):
        raise AltBN128Error("cannot compress G2 infinity")
    _, y = normalize(point)
    out = bytearray(data[:64])
    if _fq2_is_larger(y):
        out[0] |= COMPRESSION_FLAG_NEGATIVE_Y
    return bytes(out)


def alt_bn128_g2_decompress(data: bytes) -> bytes:
    """
    Decompress a 64-byte G2 point.

    Raises:
        AltBN128Error: Wrong length, infinity or all-zero input, coordinate
            not below the modulus, or no matching point in the subgroup
    """
    if len(data) != G2_COMPRESSED_POINT_SIZE:
        raise AltBN128Error(f"compressed G2 point must be {G2_COMPRESSED_POINT_SIZE} bytes")
    if not any(data):
        raise AltBN128Error("all-zero compressed G2 point")

    flags = data[0] & COMPRESSION_FLAG_MASK
    if flags & COMPRESSION_FLAG_INFINITY:
        raise AltBN128Error("compressed G2 infinity")

    x_c1 = int.from_bytes(bytes([data[0] & ~COMPRESSION_FLAG_MASK & 0xFF]) + data[1:32], "big")
    x_c0 = int.from_bytes(data[32:64], "big")
    if x_c1 >= field_modulus or x_c0 >= field_modulus:
        raise AltBN128Error("x not below modulus")

    x = FQ2([x_c0, x_c1])
    y = _fq2_sqrt(x ** 3 + b2)
    if y is None:
        raise AltBN128Error("x is not on twist")
    if _fq2_is_larger(y) != bool(flags & COMPRESSION_FLAG_NEGATIVE_Y):
        y = -y

    point = (x, y, FQ2.one())
    if not is_inf(multiply(point, curve_order)):
        raise AltBN128Error("G2 point not in subgroup")
    return encode_g2(point)

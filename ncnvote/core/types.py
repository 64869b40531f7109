"""
NCN Vote Curve Types

BN254 points in their wire encodings plus the private scalar.

All multi-byte integers are BIG-ENDIAN unless noted. The all-zero encoding
is never a usable point: arithmetic refuses it as an operand and never
returns it as a result.
"""

from __future__ import annotations
from dataclasses import dataclass
import secrets

from ncnvote.constants import (
    G1_COMPRESSED_POINT_SIZE,
    G1_POINT_SIZE,
    G2_COMPRESSED_POINT_SIZE,
    G2_POINT_SIZE,
    SCALAR_SIZE,
)
from ncnvote.core import bn254
from ncnvote.core.bn254 import AltBN128Error, CURVE_ORDER, FIELD_MODULUS
from ncnvote.errors import (
    CurveArithmeticError,
    DecompressionError,
    InvalidInputLengthError,
    InvalidScalarError,
)


def _check_scalar(scalar: bytes) -> bytes:
    if len(scalar) != SCALAR_SIZE:
        raise InvalidInputLengthError("scalar", len(scalar), SCALAR_SIZE)
    return scalar


@dataclass(frozen=True, slots=True)
class G1Point:
    """
    Uncompressed G1 point.

    SIZE: 64 bytes
    SERIALIZATION: x || y
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != G1_POINT_SIZE:
            raise InvalidInputLengthError("G1Point", len(self.data), G1_POINT_SIZE)

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"G1Point({self.data.hex()[:16]}...)"

    def __add__(self, other: G1Point) -> G1Point:
        return self.add(other)

    def __neg__(self) -> G1Point:
        return self.negate()

    def hex(self) -> str:
        return self.data.hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> G1Point:
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def generator(cls) -> G1Point:
        return cls(bn254.G1_GENERATOR_BYTES)

    def is_zero(self) -> bool:
        return not any(self.data)

    def add(self, other: G1Point) -> G1Point:
        """
        Add two G1 points.

        Raises:
            CurveArithmeticError: Zero operand, invalid operand or zero sum
        """
        if self.is_zero() or other.is_zero():
            raise CurveArithmeticError("G1 addition", "zero operand")
        try:
            result = bn254.alt_bn128_addition(self.data + other.data)
        except AltBN128Error as e:
            raise CurveArithmeticError("G1 addition", str(e)) from e
        if not any(result):
            raise CurveArithmeticError("G1 addition", "sum is the point at infinity")
        return G1Point(result)

    def negate(self) -> G1Point:
        """Return (x, p - y); y = 0 maps to itself."""
        y = int.from_bytes(self.data[32:], "big")
        neg_y = (FIELD_MODULUS - y) % FIELD_MODULUS
        return G1Point(self.data[:32] + neg_y.to_bytes(32, "big"))

    def mul(self, scalar: bytes) -> G1Point:
        """
        Multiply by a 32-byte big-endian scalar.

        Raises:
            CurveArithmeticError: Zero operand, invalid operand or zero product
        """
        _check_scalar(scalar)
        if self.is_zero():
            raise CurveArithmeticError("G1 multiplication", "zero operand")
        try:
            result = bn254.alt_bn128_multiplication(self.data + scalar)
        except AltBN128Error as e:
            raise CurveArithmeticError("G1 multiplication", str(e)) from e
        if not any(result):
            raise CurveArithmeticError("G1 multiplication", "product is the point at infinity")
        return G1Point(result)

    def compress(self) -> G1CompressedPoint:
        if self.is_zero():
            raise CurveArithmeticError("G1 compression", "zero point")
        try:
            return G1CompressedPoint(bn254.alt_bn128_g1_compress(self.data))
        except AltBN128Error as e:
            raise CurveArithmeticError("G1 compression", str(e)) from e


@dataclass(frozen=True, slots=True)
class G1CompressedPoint:
    """
    Compressed G1 point, as stored for each operator.

    SIZE: 32 bytes
    SERIALIZATION: x with y-sign flag in bit 7 of the first byte
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != G1_COMPRESSED_POINT_SIZE:
            raise InvalidInputLengthError(
                "G1CompressedPoint", len(self.data), G1_COMPRESSED_POINT_SIZE
            )

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"G1CompressedPoint({self.data.hex()[:16]}...)"

    def hex(self) -> str:
        return self.data.hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> G1CompressedPoint:
        return cls(bytes.fromhex(hex_string))

    def decompress(self) -> G1Point:
        try:
            return G1Point(bn254.alt_bn128_g1_decompress(self.data))
        except AltBN128Error as e:
            raise DecompressionError("G1", str(e)) from e


@dataclass(frozen=True, slots=True)
class G2Point:
    """
    Uncompressed G2 point.

    SIZE: 128 bytes
    SERIALIZATION: x.c1 || x.c0 || y.c1 || y.c0
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != G2_POINT_SIZE:
            raise InvalidInputLengthError("G2Point", len(self.data), G2_POINT_SIZE)

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"G2Point({self.data.hex()[:16]}...)"

    def __add__(self, other: G2Point) -> G2Point:
        return self.add(other)

    def hex(self) -> str:
        return self.data.hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> G2Point:
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def generator(cls) -> G2Point:
        return cls(bn254.G2_GENERATOR_BYTES)

    @classmethod
    def negated_generator(cls) -> G2Point:
        return cls(bn254.G2_MINUS_ONE_BYTES)

    def is_zero(self) -> bool:
        return not any(self.data)

    def add(self, other: G2Point) -> G2Point:
        if self.is_zero() or other.is_zero():
            raise CurveArithmeticError("G2 addition", "zero operand")
        try:
            result = bn254.alt_bn128_g2_addition(self.data + other.data)
        except AltBN128Error as e:
            raise CurveArithmeticError("G2 addition", str(e)) from e
        if not any(result):
            raise CurveArithmeticError("G2 addition", "sum is the point at infinity")
        return G2Point(result)

    def mul(self, scalar: bytes) -> G2Point:
        _check_scalar(scalar)
        if self.is_zero():
            raise CurveArithmeticError("G2 multiplication", "zero operand")
        try:
            result = bn254.alt_bn128_g2_multiplication(self.data + scalar)
        except AltBN128Error as e:
            raise CurveArithmeticError("G2 multiplication", str(e)) from e
        if not any(result):
            raise CurveArithmeticError("G2 multiplication", "product is the point at infinity")
        return G2Point(result)

    def compress(self) -> G2CompressedPoint:
        if self.is_zero():
            raise CurveArithmeticError("G2 compression", "zero point")
        try:
            return G2CompressedPoint(bn254.alt_bn128_g2_compress(self.data))
        except AltBN128Error as e:
            raise CurveArithmeticError("G2 compression", str(e)) from e


@dataclass(frozen=True, slots=True)
class G2CompressedPoint:
    """
    Compressed G2 point.

    SIZE: 64 bytes
    SERIALIZATION: x.c1 || x.c0 with y-sign flag in bit 7 of the first byte
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != G2_COMPRESSED_POINT_SIZE:
            raise InvalidInputLengthError(
                "G2CompressedPoint", len(self.data), G2_COMPRESSED_POINT_SIZE
            )

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"G2CompressedPoint({self.data.hex()[:16]}...)"

    def hex(self) -> str:
        return self.data.hex()

    def decompress(self) -> G2Point:
        try:
            return G2Point(bn254.alt_bn128_g2_decompress(self.data))
        except AltBN128Error as e:
            raise DecompressionError("G2", str(e)) from e


@dataclass(frozen=True, slots=True)
class PrivKey:
    """
    Operator private scalar.

    SIZE: 32 bytes, big-endian, in [1, curve order)
    NOTE: Never transmitted or logged.
    """
    data: bytes

    def __post_init__(self):
        _check_scalar(self.data)
        value = int.from_bytes(self.data, "big")
        if value == 0 or value >= CURVE_ORDER:
            raise InvalidScalarError("private key must be in [1, curve order)")

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return "PrivKey(***)"

    @classmethod
    def from_int(cls, value: int) -> PrivKey:
        if not 0 < value < CURVE_ORDER:
            raise InvalidScalarError("private key must be in [1, curve order)")
        return cls(value.to_bytes(SCALAR_SIZE, "big"))

    @classmethod
    def from_random(cls) -> PrivKey:
        while True:
            candidate = secrets.token_bytes(SCALAR_SIZE)
            value = int.from_bytes(candidate, "big")
            if 0 < value < CURVE_ORDER:
                return cls(candidate)

    def to_int(self) -> int:
        return int.from_bytes(self.data, "big")

    def g1_pubkey(self) -> G1Point:
        return G1Point.generator().mul(self.data)

    def g2_pubkey(self) -> G2Point:
        return G2Point.generator().mul(self.data)

"""
NCN Vote Partial-Aggregation Reconciler

Turns the snapshot's all-operator G1 aggregate into the signer-only
aggregate by subtracting the keys of operators whose bitmap bit is clear.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from ncnvote.consensus.snapshot import OperatorSnapshotEntry
from ncnvote.core.types import G1Point
from ncnvote.errors import InvalidBitmapError, InvalidParameterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SignerBitmap:
    """
    One bit per operator, bit (i % 8) of byte (i // 8) for operator i.

    SIZE: ceil(operator_count / 8) bytes
    Bits past operator_count are ignored.
    """
    data: bytes
    operator_count: int

    def __post_init__(self):
        expected = self.required_length(self.operator_count)
        if len(self.data) != expected:
            raise InvalidBitmapError(len(self.data), expected)

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"SignerBitmap({self.data.hex()}, n={self.operator_count})"

    @staticmethod
    def required_length(operator_count: int) -> int:
        return (operator_count + 7) // 8

    def is_signer(self, index: int) -> bool:
        if not 0 <= index < self.operator_count:
            raise InvalidParameterError("index", f"{index} outside 0..{self.operator_count - 1}")
        return (self.data[index // 8] >> (index % 8)) & 1 == 1

    def signer_indices(self) -> Tuple[int, ...]:
        return tuple(i for i in range(self.operator_count) if self.is_signer(i))

    def non_signer_indices(self) -> Tuple[int, ...]:
        return tuple(i for i in range(self.operator_count) if not self.is_signer(i))

    @property
    def signer_count(self) -> int:
        return len(self.signer_indices())

    @property
    def non_signer_count(self) -> int:
        return self.operator_count - self.signer_count

    @classmethod
    def from_non_signers(cls, non_signer_indices: Iterable[int], operator_count: int) -> SignerBitmap:
        """All bits set, then clear each non-signer."""
        data = bytearray([0xFF] * cls.required_length(operator_count))
        for index in non_signer_indices:
            if not 0 <= index < operator_count:
                raise InvalidParameterError("non_signer_indices", f"{index} out of range")
            data[index // 8] &= ~(1 << (index % 8)) & 0xFF
        return cls(bytes(data), operator_count)

    @classmethod
    def from_signers(cls, signer_indices: Iterable[int], operator_count: int) -> SignerBitmap:
        data = bytearray(cls.required_length(operator_count))
        for index in signer_indices:
            if not 0 <= index < operator_count:
                raise InvalidParameterError("signer_indices", f"{index} out of range")
            data[index // 8] |= 1 << (index % 8)
        return cls(bytes(data), operator_count)


@dataclass(frozen=True)
class ReconciledKey:
    """Signer-only aggregate with the split it was derived from."""
    apk1: G1Point
    signer_indices: Tuple[int, ...]
    non_signer_indices: Tuple[int, ...]

    @property
    def non_signers_count(self) -> int:
        return len(self.non_signer_indices)


def reconcile_aggregate_key(
    entries: Sequence[OperatorSnapshotEntry],
    bitmap: SignerBitmap,
    total_g1: G1Point,
) -> ReconciledKey:
    """
    Compute APK1 = total - sum(non-signer keys).

    Args:
        entries: Snapshot entries, indexed as in the bitmap
        bitmap: Signer bitmap for len(entries) operators
        total_g1: Aggregate G1 key of every operator

    Returns:
        ReconciledKey with the signer-only aggregate

    Raises:
        DecompressionError: A non-signer key is not a curve point
        CurveArithmeticError: The subtraction reached the point at infinity
    """
    if bitmap.operator_count != len(entries):
        raise InvalidBitmapError(len(bitmap.data), SignerBitmap.required_length(len(entries)))

    signers = []
    non_signers = []
    non_signers_sum: Optional[G1Point] = None

    for index, entry in enumerate(entries):
        if bitmap.is_signer(index):
            signers.append(index)
            continue
        non_signers.append(index)
        key = entry.g1_pubkey.decompress()
        non_signers_sum = key if non_signers_sum is None else non_signers_sum.add(key)

    if non_signers_sum is None:
        apk1 = total_g1
    else:
        apk1 = total_g1.add(non_signers_sum.negate())

    logger.debug(f"Reconciled {len(signers)} signers, {len(non_signers)} non-signers")
    return ReconciledKey(
        apk1=apk1,
        signer_indices=tuple(signers),
        non_signer_indices=tuple(non_signers),
    )

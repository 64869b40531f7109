"""
NCN Vote Operator Snapshot

Immutable per-round view of the registered operators and the cached sum of
their G1 keys. A changed operator set is a new snapshot.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence, Tuple

from ncnvote.constants import MAX_OPERATORS, MIN_ELIGIBLE_STAKE
from ncnvote.core.types import G1CompressedPoint, G1Point, G2Point
from ncnvote.crypto.bls import verify_key_pair
from ncnvote.errors import (
    DuplicateOperatorError,
    EmptyOperatorSetError,
    InvalidParameterError,
    KeyMismatchError,
    OperatorNotFoundError,
    TooManyOperatorsError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatorSnapshotEntry:
    """
    One operator as captured for a round.

    Attributes:
        operator: Operator identity
        g1_pubkey: Compressed G1 public key
        snapshot_round: Round in which stake was last captured
        stake_weight: Stake applying to snapshot_round
        next_round_stake_weight: Stake already known for the following round
            (defaults to stake_weight)
    """
    operator: str
    g1_pubkey: G1CompressedPoint
    snapshot_round: int
    stake_weight: int
    next_round_stake_weight: Optional[int] = None

    def __post_init__(self):
        if self.snapshot_round < 0:
            raise InvalidParameterError("snapshot_round", "must be non-negative")
        if self.stake_weight < 0:
            raise InvalidParameterError("stake_weight", "must be non-negative")
        if self.next_round_stake_weight is not None and self.next_round_stake_weight < 0:
            raise InvalidParameterError("next_round_stake_weight", "must be non-negative")

    def stake_weight_at(self, current_round: int) -> Optional[int]:
        """
        Stake weight valid in current_round.

        Same round uses stake_weight, the following round uses
        next_round_stake_weight. Any other round is stale and yields None.
        """
        diff = current_round - self.snapshot_round
        if diff == 0:
            return self.stake_weight
        if diff == 1:
            if self.next_round_stake_weight is None:
                return self.stake_weight
            return self.next_round_stake_weight
        return None

    def has_minimum_stake_now(self, current_round: int, minimum_stake: int) -> bool:
        weight = self.stake_weight_at(current_round)
        if weight is None:
            return False
        return weight >= max(minimum_stake, MIN_ELIGIBLE_STAKE)


def compute_aggregate_g1(keys: Iterable[G1CompressedPoint]) -> Optional[G1CompressedPoint]:
    """
    Sum compressed G1 keys.

    Returns:
        Compressed sum, or None when there are no keys
    """
    total: Optional[G1Point] = None
    for key in keys:
        point = key.decompress()
        total = point if total is None else total.add(point)
    return None if total is None else total.compress()


@dataclass(frozen=True)
class RoundSnapshot:
    """
    Operator set for one round plus its aggregate G1 key.

    Operator index i in a signer bitmap refers to entries[i]. The aggregate
    is computed on construction unless supplied.
    """
    round_number: int
    entries: Tuple[OperatorSnapshotEntry, ...] = ()
    minimum_stake: int = 0
    max_operators: int = MAX_OPERATORS
    total_g1_pubkey: Optional[G1CompressedPoint] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))
        if len(self.entries) > self.max_operators:
            raise TooManyOperatorsError(len(self.entries), self.max_operators)
        seen = set()
        for entry in self.entries:
            if entry.operator in seen:
                raise DuplicateOperatorError(entry.operator)
            seen.add(entry.operator)
        if self.total_g1_pubkey is None and self.entries:
            total = compute_aggregate_g1(entry.g1_pubkey for entry in self.entries)
            object.__setattr__(self, "total_g1_pubkey", total)

    @classmethod
    def build(
        cls,
        round_number: int,
        entries: Sequence[OperatorSnapshotEntry],
        minimum_stake: int = 0,
        max_operators: int = MAX_OPERATORS,
    ) -> RoundSnapshot:
        """
        Create a snapshot and compute its aggregate G1 key.

        Raises:
            TooManyOperatorsError: More entries than max_operators
            DuplicateOperatorError: Operator listed twice
            DecompressionError: An entry key is not a curve point
        """
        snapshot = cls(
            round_number=round_number,
            entries=tuple(entries),
            minimum_stake=minimum_stake,
            max_operators=max_operators,
        )
        logger.debug(
            f"Snapshot for round {round_number}: {snapshot.operator_count} operators"
        )
        return snapshot

    @property
    def operator_count(self) -> int:
        return len(self.entries)

    @property
    def bitmap_length(self) -> int:
        return (self.operator_count + 7) // 8

    @property
    def total_stake_weight(self) -> int:
        return sum(entry.stake_weight for entry in self.entries)

    def aggregate_public_key(self) -> G1Point:
        """Decompressed sum of every operator's G1 key."""
        if self.total_g1_pubkey is None:
            raise EmptyOperatorSetError()
        return self.total_g1_pubkey.decompress()

    def get_entry(self, index: int) -> OperatorSnapshotEntry:
        return self.entries[index]

    def index_of(self, operator: str) -> int:
        for index, entry in enumerate(self.entries):
            if entry.operator == operator:
                return index
        raise OperatorNotFoundError(operator)

    def with_operator(
        self,
        entry: OperatorSnapshotEntry,
        g2_pubkey: Optional[G2Point] = None,
    ) -> RoundSnapshot:
        """
        Return a snapshot with entry appended and the aggregate updated.

        When g2_pubkey is given the operator's G1 and G2 keys must match.

        Raises:
            TooManyOperatorsError: Snapshot already full
            DuplicateOperatorError: Operator already present
            KeyMismatchError: g2_pubkey does not match entry.g1_pubkey
        """
        if len(self.entries) >= self.max_operators:
            raise TooManyOperatorsError(len(self.entries) + 1, self.max_operators)
        if any(existing.operator == entry.operator for existing in self.entries):
            raise DuplicateOperatorError(entry.operator)

        g1_point = entry.g1_pubkey.decompress()
        if g2_pubkey is not None and not verify_key_pair(g1_point, g2_pubkey):
            raise KeyMismatchError(entry.operator)

        if self.total_g1_pubkey is None:
            total = g1_point
        else:
            total = self.total_g1_pubkey.decompress().add(g1_point)

        logger.info(f"Operator {entry.operator} added at index {len(self.entries)}")
        return replace(self, entries=self.entries + (entry,), total_g1_pubkey=total.compress())

    def without_operator(self, operator: str) -> RoundSnapshot:
        """
        Return a snapshot with operator removed and the aggregate updated.

        Later operators shift down one index.
        """
        index = self.index_of(operator)
        removed = self.entries[index]
        remaining = self.entries[:index] + self.entries[index + 1:]

        if not remaining:
            total = None
        else:
            key = removed.g1_pubkey.decompress()
            total = self.aggregate_public_key().add(key.negate()).compress()

        logger.info(f"Operator {operator} removed from index {index}")
        return replace(self, entries=remaining, total_g1_pubkey=total)

    def for_round(
        self,
        round_number: int,
        entries: Optional[Sequence[OperatorSnapshotEntry]] = None,
    ) -> RoundSnapshot:
        """Carry the operator set into another round, optionally with fresh entries."""
        if entries is None:
            return replace(self, round_number=round_number)
        return RoundSnapshot.build(round_number, entries, self.minimum_stake, self.max_operators)

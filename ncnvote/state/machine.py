"""
NCN Vote Round State Machine

Accepts one aggregate vote per round counter value.

    AwaitingVote -> Verifying -> Accepted | Rejected

The counter is read, the vote verified against it and the counter advanced
under one lock, so no two submissions can be accepted for the same value.
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ncnvote.constants import G1_POINT_SIZE, G2_POINT_SIZE, MAX_ROUND_COUNTER, MESSAGE_SIZE
from ncnvote.consensus.quorum import check_quorum, check_signer_stake
from ncnvote.consensus.reconcile import SignerBitmap, reconcile_aggregate_key
from ncnvote.consensus.snapshot import RoundSnapshot
from ncnvote.core.types import G1Point, G2Point
from ncnvote.crypto.bls import verify_aggregated_signature
from ncnvote.crypto.hash_to_curve import HashToCurve, get_scheme
from ncnvote.errors import (
    CounterOverflowError,
    EmptyOperatorSetError,
    ErrorCode,
    InvalidInputLengthError,
    InvalidParameterError,
    NCNVoteError,
    SignatureVerificationError,
    StaleOrWrongCounterError,
)

logger = logging.getLogger(__name__)


def counter_message(value: int) -> bytes:
    """Message signed for a given counter value."""
    return value.to_bytes(MESSAGE_SIZE, "little")


class RoundCounter:
    """
    Monotonic u64 vote counter.

    The little-endian counter value, zero-padded to 32 bytes, is the
    default message operators sign.
    """

    def __init__(self, value: int = 0):
        if not 0 <= value <= MAX_ROUND_COUNTER:
            raise InvalidParameterError("counter", f"{value} outside u64 range")
        self._value = value

    def __repr__(self) -> str:
        return f"RoundCounter({self._value})"

    @property
    def value(self) -> int:
        return self._value

    def message(self) -> bytes:
        return counter_message(self._value)

    def increment(self) -> int:
        """
        Advance by one.

        Raises:
            CounterOverflowError: Counter already at u64 max
        """
        if self._value >= MAX_ROUND_COUNTER:
            raise CounterOverflowError(self._value)
        self._value += 1
        return self._value


class RoundState(Enum):
    AWAITING_VOTE = "awaiting_vote"
    VERIFYING = "verifying"


class VoteStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ConsensusResult:
    """
    Artifact of an accepted vote.

    counter is the value the vote was verified against; advances_counter is
    False for votes over an explicit message.
    """
    counter: int
    message: bytes
    aggregated_signature: bytes
    aggregated_g2_key: bytes
    signer_bitmap: bytes
    signer_count: int
    non_signer_count: int
    signed_stake_weight: int
    round_number: int
    advances_counter: bool
    accepted_at: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> dict:
        return {
            "counter": self.counter,
            "message": self.message.hex(),
            "aggregated_signature": self.aggregated_signature.hex(),
            "aggregated_g2_key": self.aggregated_g2_key.hex(),
            "signer_bitmap": self.signer_bitmap.hex(),
            "signer_count": self.signer_count,
            "non_signer_count": self.non_signer_count,
            "signed_stake_weight": self.signed_stake_weight,
            "round_number": self.round_number,
            "advances_counter": self.advances_counter,
            "accepted_at": self.accepted_at,
        }


@dataclass(frozen=True)
class VoteOutcome:
    """Accepted(result) or Rejected(reason)."""
    status: VoteStatus
    result: Optional[ConsensusResult] = None
    error: Optional[NCNVoteError] = None

    @property
    def accepted(self) -> bool:
        return self.status is VoteStatus.ACCEPTED

    @property
    def reason(self) -> Optional[ErrorCode]:
        return None if self.error is None else self.error.code

    @classmethod
    def accept(cls, result: ConsensusResult) -> VoteOutcome:
        return cls(VoteStatus.ACCEPTED, result=result)

    @classmethod
    def reject(cls, error: NCNVoteError) -> VoteOutcome:
        return cls(VoteStatus.REJECTED, error=error)

    def to_dict(self) -> dict:
        data = {"status": self.status.value}
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


class RoundStateMachine:
    """
    Serializes vote verification against the round counter.

    Args:
        snapshot: Operator snapshot for the current round
        counter: Starting counter (default 0)
        scheme: Hash-to-curve scheme (default: normalized SHA-256)
        round_clock: Returns the current round for stake eligibility
            (default: the snapshot's round)
        max_history: Accepted results kept in memory
    """

    def __init__(
        self,
        snapshot: RoundSnapshot,
        counter: Optional[RoundCounter] = None,
        scheme: Optional[HashToCurve] = None,
        round_clock: Optional[Callable[[], int]] = None,
        max_history: int = 100,
    ):
        self._snapshot = snapshot
        self._counter = counter or RoundCounter()
        self._scheme = scheme or get_scheme()
        self._round_clock = round_clock
        self._lock = threading.RLock()
        self._state = RoundState.AWAITING_VOTE
        self.history: List[ConsensusResult] = []
        self.max_history = max_history

    @property
    def counter(self) -> int:
        with self._lock:
            return self._counter.value

    @property
    def state(self) -> RoundState:
        with self._lock:
            return self._state

    @property
    def snapshot(self) -> RoundSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def last_result(self) -> Optional[ConsensusResult]:
        with self._lock:
            return self.history[-1] if self.history else None

    def current_message(self) -> bytes:
        with self._lock:
            return self._counter.message()

    def install_snapshot(self, snapshot: RoundSnapshot) -> None:
        """Replace the operator snapshot between votes."""
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            f"Installed snapshot for round {snapshot.round_number} "
            f"({snapshot.operator_count} operators)"
        )

    # ==========================================================================
    # VOTING
    # ==========================================================================

    def cast_vote(
        self,
        aggregated_signature: bytes,
        aggregated_g2_key: bytes,
        signer_bitmap: bytes,
        message: Optional[bytes] = None,
    ) -> VoteOutcome:
        """
        Verify a vote and, if accepted, advance the counter.

        Args:
            aggregated_signature: 64-byte uncompressed G1 aggregate signature
            aggregated_g2_key: 128-byte uncompressed G2 aggregate key
            signer_bitmap: ceil(operator_count / 8) byte signer bitmap
            message: Explicit 32-byte message; None signs the counter

        Returns:
            VoteOutcome, Rejected outcomes leave all state unchanged

        Raises:
            CounterOverflowError: Counter cannot advance past u64 max
        """
        with self._lock:
            outcome = self.prepare_vote(
                aggregated_signature, aggregated_g2_key, signer_bitmap, message
            )
            if outcome.accepted:
                self.commit(outcome)
            return outcome

    def prepare_vote(
        self,
        aggregated_signature: bytes,
        aggregated_g2_key: bytes,
        signer_bitmap: bytes,
        message: Optional[bytes] = None,
    ) -> VoteOutcome:
        """
        Verify a vote without changing any state.

        An Accepted outcome must be passed to commit() to take effect.
        """
        with self._lock:
            self._state = RoundState.VERIFYING
            try:
                result = self._verify(
                    aggregated_signature, aggregated_g2_key, signer_bitmap, message
                )
            except NCNVoteError as e:
                logger.warning(f"Vote rejected at counter {self._counter.value}: {e}")
                return VoteOutcome.reject(e)
            finally:
                self._state = RoundState.AWAITING_VOTE
            return VoteOutcome.accept(result)

    def commit(self, outcome: VoteOutcome) -> None:
        """
        Apply an accepted outcome from prepare_vote().

        Raises:
            InvalidParameterError: Outcome is not Accepted
            StaleOrWrongCounterError: Counter moved since the outcome was prepared
            CounterOverflowError: Counter cannot advance past u64 max
        """
        if not outcome.accepted or outcome.result is None:
            raise InvalidParameterError("outcome", "only accepted outcomes can be committed")
        result = outcome.result

        with self._lock:
            if result.advances_counter:
                if result.counter != self._counter.value:
                    raise StaleOrWrongCounterError(result.counter)
                self._counter.increment()
            self._save_history(result)

        logger.info(
            f"Vote accepted at counter {result.counter} "
            f"({result.signer_count}/{result.signer_count + result.non_signer_count} signers)"
        )

    def _verify(
        self,
        aggregated_signature: bytes,
        aggregated_g2_key: bytes,
        signer_bitmap: bytes,
        message: Optional[bytes],
    ) -> ConsensusResult:
        if len(aggregated_signature) != G1_POINT_SIZE:
            raise InvalidInputLengthError(
                "aggregated_signature", len(aggregated_signature), G1_POINT_SIZE
            )
        if len(aggregated_g2_key) != G2_POINT_SIZE:
            raise InvalidInputLengthError(
                "aggregated_g2_key", len(aggregated_g2_key), G2_POINT_SIZE
            )

        counter_value = self._counter.value
        explicit = message is not None
        if explicit:
            if len(message) != MESSAGE_SIZE:
                raise InvalidInputLengthError("message", len(message), MESSAGE_SIZE)
            signed_message = bytes(message)
        else:
            signed_message = self._counter.message()

        snapshot = self._snapshot
        if snapshot.operator_count == 0:
            raise EmptyOperatorSetError()
        bitmap = SignerBitmap(bytes(signer_bitmap), snapshot.operator_count)

        current_round = self._round_clock() if self._round_clock else snapshot.round_number
        signed_weight = check_signer_stake(snapshot, bitmap, current_round)
        check_quorum(bitmap.non_signer_count, snapshot.operator_count)

        reconciled = reconcile_aggregate_key(
            snapshot.entries, bitmap, snapshot.aggregate_public_key()
        )

        try:
            verify_aggregated_signature(
                G2Point(bytes(aggregated_g2_key)),
                G1Point(bytes(aggregated_signature)),
                signed_message,
                reconciled.apk1,
                self._scheme,
            )
        except SignatureVerificationError as e:
            if explicit:
                raise
            raise StaleOrWrongCounterError(counter_value) from e

        return ConsensusResult(
            counter=counter_value,
            message=signed_message,
            aggregated_signature=bytes(aggregated_signature),
            aggregated_g2_key=bytes(aggregated_g2_key),
            signer_bitmap=bytes(signer_bitmap),
            signer_count=len(reconciled.signer_indices),
            non_signer_count=reconciled.non_signers_count,
            signed_stake_weight=signed_weight,
            round_number=current_round,
            advances_counter=not explicit,
        )

    def _save_history(self, result: ConsensusResult) -> None:
        self.history.append(result)
        while len(self.history) > self.max_history:
            self.history.pop(0)

    def get_result(self, counter: int) -> Optional[ConsensusResult]:
        """Accepted counter-advancing result for a counter value, if still in history."""
        with self._lock:
            for result in reversed(self.history):
                if result.advances_counter and result.counter == counter:
                    return result
        return None

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "counter": self._counter.value,
                "round_number": self._snapshot.round_number,
                "operator_count": self._snapshot.operator_count,
                "history_size": len(self.history),
            }

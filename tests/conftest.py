"""
NCN Vote Test Fixtures
"""

import pytest
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ncnvote.consensus.reconcile import SignerBitmap
from ncnvote.consensus.snapshot import OperatorSnapshotEntry, RoundSnapshot
from ncnvote.core.types import G1Point, G2Point, PrivKey
from ncnvote.crypto.bls import aggregate_g2_pubkeys, aggregate_signatures, sign
from ncnvote.state.machine import counter_message


SNAPSHOT_ROUND = 7
OPERATOR_STAKE = 100
MINIMUM_STAKE = 10


@dataclass(frozen=True)
class Operator:
    """Operator key material for tests."""
    name: str
    privkey: PrivKey
    g1_pubkey: G1Point
    g2_pubkey: G2Point


@pytest.fixture(scope="session")
def operators() -> List[Operator]:
    """Four operators with deterministic keys."""
    result = []
    for i in range(4):
        privkey = PrivKey.from_int(1_000_003 * (i + 1) + 17)
        result.append(Operator(
            name=f"operator-{i}",
            privkey=privkey,
            g1_pubkey=privkey.g1_pubkey(),
            g2_pubkey=privkey.g2_pubkey(),
        ))
    return result


@pytest.fixture
def snapshot_entries(operators) -> List[OperatorSnapshotEntry]:
    """Snapshot entries with equal stake captured in SNAPSHOT_ROUND."""
    return [
        OperatorSnapshotEntry(
            operator=op.name,
            g1_pubkey=op.g1_pubkey.compress(),
            snapshot_round=SNAPSHOT_ROUND,
            stake_weight=OPERATOR_STAKE,
        )
        for op in operators
    ]


@pytest.fixture
def snapshot(snapshot_entries) -> RoundSnapshot:
    """Round snapshot of the four operators."""
    return RoundSnapshot.build(SNAPSHOT_ROUND, snapshot_entries, minimum_stake=MINIMUM_STAKE)


@pytest.fixture
def make_vote(operators) -> Callable[..., Tuple[bytes, bytes, bytes]]:
    """
    Build (aggregated_signature, aggregated_g2_key, signer_bitmap) for a vote.

    Signers sign message, or the counter message when counter is given.
    """
    def _make_vote(
        signer_indices: Sequence[int],
        counter: Optional[int] = None,
        message: Optional[bytes] = None,
    ) -> Tuple[bytes, bytes, bytes]:
        if message is None:
            message = counter_message(counter or 0)
        signers = [operators[i] for i in signer_indices]
        signature = aggregate_signatures(sign(op.privkey, message) for op in signers)
        apk2 = aggregate_g2_pubkeys(op.g2_pubkey for op in signers)
        bitmap = SignerBitmap.from_signers(signer_indices, len(operators))
        return signature.data, apk2.data, bitmap.data

    return _make_vote

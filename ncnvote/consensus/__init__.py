"""
NCN Vote Consensus

Operator snapshots, partial-aggregation reconciliation and quorum rules.
"""

from ncnvote.consensus.snapshot import (
    OperatorSnapshotEntry,
    RoundSnapshot,
    compute_aggregate_g1,
)
from ncnvote.consensus.reconcile import (
    SignerBitmap,
    ReconciledKey,
    reconcile_aggregate_key,
)
from ncnvote.consensus.quorum import (
    max_non_signers,
    is_quorum_met,
    check_quorum,
    check_signer_stake,
)

__all__ = [
    # Snapshot
    "OperatorSnapshotEntry",
    "RoundSnapshot",
    "compute_aggregate_g1",
    # Reconciler
    "SignerBitmap",
    "ReconciledKey",
    "reconcile_aggregate_key",
    # Quorum
    "max_non_signers",
    "is_quorum_met",
    "check_quorum",
    "check_signer_stake",
]

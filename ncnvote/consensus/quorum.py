"""
NCN Vote Quorum Rules

Stake eligibility of signers and the one-third abstention bound.
"""

from __future__ import annotations
import logging

from ncnvote.constants import QUORUM_DENOMINATOR
from ncnvote.consensus.reconcile import SignerBitmap
from ncnvote.consensus.snapshot import RoundSnapshot
from ncnvote.errors import InsufficientStakeError, QuorumNotMetError

logger = logging.getLogger(__name__)


def max_non_signers(operator_count: int) -> int:
    """Largest number of operators that may abstain."""
    return operator_count // QUORUM_DENOMINATOR


def is_quorum_met(non_signers_count: int, operator_count: int) -> bool:
    return non_signers_count <= max_non_signers(operator_count)


def check_quorum(non_signers_count: int, operator_count: int) -> None:
    """
    Raises:
        QuorumNotMetError: More than operator_count // 3 non-signers
    """
    if not is_quorum_met(non_signers_count, operator_count):
        raise QuorumNotMetError(
            non_signers_count, max_non_signers(operator_count), operator_count
        )


def check_signer_stake(
    snapshot: RoundSnapshot,
    bitmap: SignerBitmap,
    current_round: int,
) -> int:
    """
    Confirm every signer holds eligible stake in current_round.

    Args:
        snapshot: Operator snapshot
        bitmap: Signer bitmap
        current_round: Round the vote is cast in

    Returns:
        Total stake weight of the signers

    Raises:
        InsufficientStakeError: First signer whose entry is stale or under
            the minimum
    """
    signed_weight = 0
    for index in bitmap.signer_indices():
        entry = snapshot.get_entry(index)
        weight = entry.stake_weight_at(current_round)
        if weight is None:
            raise InsufficientStakeError(
                index,
                entry.operator,
                f"snapshot from round {entry.snapshot_round} is stale in round {current_round}",
            )
        if not entry.has_minimum_stake_now(current_round, snapshot.minimum_stake):
            raise InsufficientStakeError(
                index,
                entry.operator,
                f"stake {weight} below minimum {snapshot.minimum_stake}",
            )
        signed_weight += weight

    logger.debug(f"Signers hold {signed_weight} stake in round {current_round}")
    return signed_weight

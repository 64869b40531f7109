"""
NCN Vote State Machine

Round counter, vote verification state machine and durable storage.
"""

from ncnvote.state.machine import (
    RoundCounter,
    RoundState,
    RoundStateMachine,
    VoteStatus,
    VoteOutcome,
    ConsensusResult,
    counter_message,
)
from ncnvote.state.storage import (
    RoundStorage,
)

__all__ = [
    # Machine
    "RoundCounter",
    "RoundState",
    "RoundStateMachine",
    "VoteStatus",
    "VoteOutcome",
    "ConsensusResult",
    "counter_message",
    # Storage
    "RoundStorage",
]

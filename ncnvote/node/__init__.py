"""
NCN Vote Verifier Node
Configuration and the async vote service.
"""

from ncnvote.node.config import (
    VerifierConfig,
    ConsensusConfig,
    StorageConfig,
    LogConfig,
    setup_logging,
)
from ncnvote.node.service import VoteService, VoteServiceStats

__all__ = [
    "VerifierConfig",
    "ConsensusConfig",
    "StorageConfig",
    "LogConfig",
    "setup_logging",
    "VoteService",
    "VoteServiceStats",
]

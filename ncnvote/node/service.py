"""
NCN Vote Service
Async front end for the round state machine with durable commits.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from ncnvote.consensus.snapshot import RoundSnapshot
from ncnvote.crypto.hash_to_curve import get_scheme
from ncnvote.errors import InvalidParameterError, TooManyOperatorsError
from ncnvote.node.config import VerifierConfig
from ncnvote.state.machine import (
    RoundCounter,
    RoundStateMachine,
    VoteOutcome,
)
from ncnvote.state.storage import RoundStorage

logger = logging.getLogger(__name__)


@dataclass
class VoteServiceStats:
    """Vote service statistics."""
    submissions: int = 0
    accepted: int = 0
    rejected: int = 0


class VoteService:
    """
    Serializes vote submissions and persists accepted rounds.

    Verification runs in a worker thread. An accepted counter-advancing vote
    is written to storage before the in-memory counter moves, so a restart
    never resumes behind an accepted round.
    """

    def __init__(
        self,
        config: VerifierConfig,
        snapshot: RoundSnapshot,
        storage: Optional[RoundStorage] = None,
    ):
        errors = config.validate()
        if errors:
            raise InvalidParameterError("config", "; ".join(errors))
        self.config = config
        snapshot = self._apply_policy(snapshot)
        self.storage = storage
        if self.storage is None and config.storage.enabled:
            self.storage = RoundStorage(str(config.db_path))

        self._initial_snapshot = snapshot
        self.machine: Optional[RoundStateMachine] = None
        self.stats = VoteServiceStats()
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self.machine is not None

    async def start(self) -> None:
        """Open storage and resume from the persisted counter."""
        if self.running:
            return

        counter = 0
        if self.storage is not None:
            await self.storage.connect()
            counter = await self.storage.load_counter()

        self.machine = RoundStateMachine(
            self._initial_snapshot,
            counter=RoundCounter(counter),
            scheme=get_scheme(self.config.consensus.hash_scheme),
            max_history=self.config.consensus.max_history,
        )
        logger.info(f"{self.config.name} started at counter {counter}")

    async def stop(self) -> None:
        """Wait for the in-flight submission, then close storage."""
        async with self._lock:
            self.machine = None
            if self.storage is not None:
                await self.storage.close()
        logger.info(f"{self.config.name} stopped")

    async def __aenter__(self) -> "VoteService":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    def _apply_policy(self, snapshot: RoundSnapshot) -> RoundSnapshot:
        """Enforce the configured operator cap and stake floor on a snapshot."""
        consensus = self.config.consensus
        if snapshot.operator_count > consensus.max_operators:
            raise TooManyOperatorsError(snapshot.operator_count, consensus.max_operators)
        if snapshot.minimum_stake < consensus.minimum_stake:
            snapshot = replace(snapshot, minimum_stake=consensus.minimum_stake)
        return snapshot

    def _require_machine(self) -> RoundStateMachine:
        if self.machine is None:
            raise InvalidParameterError("service", "not started")
        return self.machine

    async def submit_vote(
        self,
        aggregated_signature: bytes,
        aggregated_g2_key: bytes,
        signer_bitmap: bytes,
        message: Optional[bytes] = None,
    ) -> VoteOutcome:
        """
        Verify a vote and make an accepted one durable.

        Raises:
            InvalidParameterError: Service is not running
            CounterOverflowError: Counter cannot advance past u64 max
            StorageError: Persisted counter diverged from the machine
        """
        async with self._lock:
            machine = self._require_machine()
            self.stats.submissions += 1
            outcome = await asyncio.to_thread(
                machine.prepare_vote,
                aggregated_signature,
                aggregated_g2_key,
                signer_bitmap,
                message,
            )
            if not outcome.accepted:
                self.stats.rejected += 1
                return outcome

            if self.storage is not None and outcome.result.advances_counter:
                await self.storage.record_consensus(outcome.result)
            machine.commit(outcome)
            self.stats.accepted += 1
            return outcome

    async def install_snapshot(self, snapshot: RoundSnapshot) -> None:
        """Install a new operator snapshot between votes."""
        snapshot = self._apply_policy(snapshot)
        async with self._lock:
            self._require_machine().install_snapshot(snapshot)

    async def current_message(self) -> bytes:
        """Message operators should sign for the next vote."""
        return self._require_machine().current_message()

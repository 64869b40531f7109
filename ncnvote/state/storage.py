"""
NCN Vote Round Storage

aiosqlite persistence for the round counter and accepted vote artifacts.

Counter values are u64 and exceed SQLite's signed INTEGER range, so they are
stored as 8-byte big-endian blobs, which also sort in counter order.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import aiosqlite

from ncnvote.constants import MAX_ROUND_COUNTER, SCHEMA_VERSION
from ncnvote.errors import CounterOverflowError, StorageError
from ncnvote.state.machine import ConsensusResult

logger = logging.getLogger(__name__)


MEMORY_DB = ":memory:"


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT
);

-- Round counter (single row)
CREATE TABLE IF NOT EXISTS vote_counter (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    counter BLOB NOT NULL,
    updated_at INTEGER NOT NULL
);

-- Accepted votes, one per counter value
CREATE TABLE IF NOT EXISTS consensus_results (
    counter BLOB PRIMARY KEY,
    message BLOB NOT NULL,
    aggregated_signature BLOB NOT NULL,
    aggregated_g2_key BLOB NOT NULL,
    signer_bitmap BLOB NOT NULL,
    signer_count INTEGER NOT NULL,
    non_signer_count INTEGER NOT NULL,
    signed_stake_weight TEXT NOT NULL,
    round_number INTEGER NOT NULL,
    accepted_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_consensus_results_round ON consensus_results(round_number);
"""


def _encode_counter(value: int) -> bytes:
    return value.to_bytes(8, "big")


def _decode_counter(data: bytes) -> int:
    return int.from_bytes(data, "big")


@dataclass
class RoundStorage:
    """
    SQLite-based round storage.

    Provides persistent storage for:
    - The round counter
    - Accepted consensus results
    """
    db_path: str
    _conn: Optional[aiosqlite.Connection] = None
    _closed: bool = False

    def __post_init__(self):
        self._conn = None
        self._closed = False

    async def connect(self) -> None:
        """Open database connection and initialize schema."""
        if self._conn is not None:
            return
        self._closed = False

        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        if self.db_path != MEMORY_DB:
            await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA synchronous=FULL")

        await self._init_schema()
        logger.info(f"Connected to round storage: {self.db_path}")

    async def _init_schema(self) -> None:
        await self._conn.executescript(CREATE_TABLES_SQL)

        async with self._conn.execute(
            "SELECT value FROM schema_info WHERE key = 'version'"
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            await self._conn.execute(
                "INSERT INTO schema_info (key, value) VALUES ('version', ?)",
                (str(SCHEMA_VERSION),)
            )
            await self._conn.execute(
                "INSERT INTO vote_counter (id, counter, updated_at) VALUES (1, ?, ?)",
                (_encode_counter(0), int(time.time() * 1000))
            )
        elif int(row[0]) != SCHEMA_VERSION:
            raise StorageError(
                f"Unsupported schema version {row[0]}",
                {"expected": SCHEMA_VERSION, "found": row[0]}
            )

    async def close(self) -> None:
        """Close database connection; queries fail until connect() is called again."""
        self._closed = True
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Closed round storage")

    async def __aenter__(self) -> "RoundStorage":
        await self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _ensure_connected(self) -> None:
        if self._conn is not None:
            return
        if self._closed:
            raise StorageError("Round storage is closed", {"db_path": self.db_path})
        await self.connect()

    # =========================================================================
    # Counter Operations
    # =========================================================================

    async def load_counter(self) -> int:
        """Load the persisted round counter."""
        await self._ensure_connected()
        async with self._conn.execute(
            "SELECT counter FROM vote_counter WHERE id = 1"
        ) as cursor:
            row = await cursor.fetchone()
        return 0 if row is None else _decode_counter(row[0])

    async def record_consensus(self, result: ConsensusResult) -> None:
        """
        Store an accepted vote and advance the stored counter past it.

        Both writes happen in one transaction.

        Raises:
            CounterOverflowError: result.counter is already u64 max
            StorageError: Stored counter is not result.counter
        """
        if result.counter >= MAX_ROUND_COUNTER:
            raise CounterOverflowError(result.counter)
        await self._ensure_connected()

        await self._conn.execute("BEGIN IMMEDIATE")
        try:
            async with self._conn.execute(
                "SELECT counter FROM vote_counter WHERE id = 1"
            ) as cursor:
                row = await cursor.fetchone()
            stored = _decode_counter(row[0])
            if stored != result.counter:
                raise StorageError(
                    f"Stored counter {stored} does not match result counter {result.counter}",
                    {"stored": stored, "result": result.counter}
                )

            await self._conn.execute(
                """INSERT INTO consensus_results
                   (counter, message, aggregated_signature, aggregated_g2_key,
                    signer_bitmap, signer_count, non_signer_count,
                    signed_stake_weight, round_number, accepted_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    _encode_counter(result.counter),
                    result.message,
                    result.aggregated_signature,
                    result.aggregated_g2_key,
                    result.signer_bitmap,
                    result.signer_count,
                    result.non_signer_count,
                    str(result.signed_stake_weight),
                    result.round_number,
                    result.accepted_at,
                )
            )
            await self._conn.execute(
                "UPDATE vote_counter SET counter = ?, updated_at = ? WHERE id = 1",
                (_encode_counter(result.counter + 1), int(time.time() * 1000))
            )
        except Exception:
            await self._conn.execute("ROLLBACK")
            raise
        await self._conn.execute("COMMIT")

        logger.debug(f"Recorded consensus result for counter {result.counter}")

    # =========================================================================
    # Result Queries
    # =========================================================================

    async def get_result(self, counter: int) -> Optional[ConsensusResult]:
        """Load the accepted result for a counter value."""
        await self._ensure_connected()
        async with self._conn.execute(
            """SELECT counter, message, aggregated_signature, aggregated_g2_key,
                      signer_bitmap, signer_count, non_signer_count,
                      signed_stake_weight, round_number, accepted_at
               FROM consensus_results WHERE counter = ?""",
            (_encode_counter(counter),)
        ) as cursor:
            row = await cursor.fetchone()
        return None if row is None else self._row_to_result(row)

    async def list_results(self, limit: int = 100) -> List[ConsensusResult]:
        """Most recent accepted results, newest first."""
        await self._ensure_connected()
        async with self._conn.execute(
            """SELECT counter, message, aggregated_signature, aggregated_g2_key,
                      signer_bitmap, signer_count, non_signer_count,
                      signed_stake_weight, round_number, accepted_at
               FROM consensus_results ORDER BY counter DESC LIMIT ?""",
            (limit,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_result(row) for row in rows]

    @staticmethod
    def _row_to_result(row) -> ConsensusResult:
        return ConsensusResult(
            counter=_decode_counter(row[0]),
            message=bytes(row[1]),
            aggregated_signature=bytes(row[2]),
            aggregated_g2_key=bytes(row[3]),
            signer_bitmap=bytes(row[4]),
            signer_count=row[5],
            non_signer_count=row[6],
            signed_stake_weight=int(row[7]),
            round_number=row[8],
            advances_counter=True,
            accepted_at=row[9],
        )

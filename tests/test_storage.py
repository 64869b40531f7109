"""
NCN Vote Round Storage Tests
"""

import pytest

from ncnvote.constants import MAX_ROUND_COUNTER
from ncnvote.errors import CounterOverflowError, StorageError
from ncnvote.state.machine import ConsensusResult, counter_message
from ncnvote.state.storage import MEMORY_DB, RoundStorage


def make_result(counter: int, stake: int = 300) -> ConsensusResult:
    return ConsensusResult(
        counter=counter,
        message=counter_message(counter),
        aggregated_signature=bytes([counter % 256]) * 64,
        aggregated_g2_key=b"\x02" * 128,
        signer_bitmap=b"\x07",
        signer_count=3,
        non_signer_count=1,
        signed_stake_weight=stake,
        round_number=7,
        advances_counter=True,
        accepted_at=1_700_000_000_000 + counter,
    )


class TestRoundStorage:
    """Tests for RoundStorage."""

    @pytest.mark.asyncio
    async def test_fresh_counter(self):
        """Test a new database starts at zero."""
        async with RoundStorage(MEMORY_DB) as storage:
            assert await storage.load_counter() == 0
            assert await storage.list_results() == []

    @pytest.mark.asyncio
    async def test_record_advances(self):
        """Test recording a result advances the stored counter."""
        async with RoundStorage(MEMORY_DB) as storage:
            result = make_result(0)
            await storage.record_consensus(result)
            assert await storage.load_counter() == 1
            assert await storage.get_result(0) == result
            assert await storage.get_result(1) is None

    @pytest.mark.asyncio
    async def test_list_newest_first(self):
        """Test results are listed newest first."""
        async with RoundStorage(MEMORY_DB) as storage:
            for counter in range(3):
                await storage.record_consensus(make_result(counter))
            listed = await storage.list_results()
            assert [r.counter for r in listed] == [2, 1, 0]
            assert [r.counter for r in await storage.list_results(limit=1)] == [2]

    @pytest.mark.asyncio
    async def test_counter_mismatch(self):
        """Test a result for the wrong counter is refused without side effects."""
        async with RoundStorage(MEMORY_DB) as storage:
            with pytest.raises(StorageError):
                await storage.record_consensus(make_result(5))
            assert await storage.load_counter() == 0
            assert await storage.get_result(5) is None

            await storage.record_consensus(make_result(0))
            with pytest.raises(StorageError):
                await storage.record_consensus(make_result(0))
            assert await storage.load_counter() == 1

    @pytest.mark.asyncio
    async def test_large_stake_weight(self):
        """Test stake weights beyond 64 bits survive storage."""
        async with RoundStorage(MEMORY_DB) as storage:
            await storage.record_consensus(make_result(0, stake=2 ** 70))
            assert (await storage.get_result(0)).signed_stake_weight == 2 ** 70

    @pytest.mark.asyncio
    async def test_overflow(self):
        """Test u64 max cannot be recorded."""
        async with RoundStorage(MEMORY_DB) as storage:
            with pytest.raises(CounterOverflowError):
                await storage.record_consensus(make_result(MAX_ROUND_COUNTER))

    @pytest.mark.asyncio
    async def test_persistence(self, tmp_path):
        """Test the counter survives reopening the database."""
        db_path = str(tmp_path / "nested" / "votes.db")
        async with RoundStorage(db_path) as storage:
            await storage.record_consensus(make_result(0))
            await storage.record_consensus(make_result(1))

        async with RoundStorage(db_path) as storage:
            assert await storage.load_counter() == 2
            assert (await storage.get_result(1)).message == counter_message(1)

    @pytest.mark.asyncio
    async def test_closed_storage_not_reopened(self, tmp_path):
        """Test queries after close fail instead of opening a new connection."""
        storage = RoundStorage(str(tmp_path / "votes.db"))
        await storage.connect()
        await storage.close()

        with pytest.raises(StorageError):
            await storage.load_counter()
        with pytest.raises(StorageError):
            await storage.record_consensus(make_result(0))
        assert storage._conn is None

        await storage.connect()
        try:
            assert await storage.load_counter() == 0
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_lazy_connect(self):
        """Test queries open the connection on demand."""
        storage = RoundStorage(MEMORY_DB)
        try:
            assert await storage.load_counter() == 0
        finally:
            await storage.close()

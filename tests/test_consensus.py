"""
NCN Vote Consensus Tests

Signer bitmaps, quorum, stake eligibility, snapshots and key reconciliation.
"""

import pytest

from ncnvote.consensus.quorum import (
    check_quorum,
    check_signer_stake,
    is_quorum_met,
    max_non_signers,
)
from ncnvote.consensus.reconcile import SignerBitmap, reconcile_aggregate_key
from ncnvote.consensus.snapshot import (
    OperatorSnapshotEntry,
    RoundSnapshot,
    compute_aggregate_g1,
)
from ncnvote.core.types import PrivKey
from ncnvote.errors import (
    DuplicateOperatorError,
    EmptyOperatorSetError,
    InsufficientStakeError,
    InvalidBitmapError,
    InvalidParameterError,
    KeyMismatchError,
    OperatorNotFoundError,
    QuorumNotMetError,
    TooManyOperatorsError,
)

from conftest import MINIMUM_STAKE, OPERATOR_STAKE, SNAPSHOT_ROUND


def entry_for(name: str, secret: int, stake: int = OPERATOR_STAKE, **kwargs) -> OperatorSnapshotEntry:
    return OperatorSnapshotEntry(
        operator=name,
        g1_pubkey=PrivKey.from_int(secret).g1_pubkey().compress(),
        snapshot_round=kwargs.pop("snapshot_round", SNAPSHOT_ROUND),
        stake_weight=stake,
        **kwargs,
    )


class TestSignerBitmap:
    """Tests for SignerBitmap."""

    def test_required_length(self):
        """Test ceil(n / 8) sizing."""
        assert SignerBitmap.required_length(1) == 1
        assert SignerBitmap.required_length(8) == 1
        assert SignerBitmap.required_length(9) == 2
        assert SignerBitmap.required_length(256) == 32

    def test_wrong_length(self):
        """Test bitmap length must match the operator count."""
        with pytest.raises(InvalidBitmapError):
            SignerBitmap(b"\x00\x00", 4)
        with pytest.raises(InvalidBitmapError):
            SignerBitmap(b"", 4)

    def test_bit_order(self):
        """Test operator i is bit i % 8 of byte i // 8."""
        bitmap = SignerBitmap(b"\x05\x01", 9)
        assert bitmap.signer_indices() == (0, 2, 8)
        assert bitmap.non_signer_indices() == (1, 3, 4, 5, 6, 7)

    def test_from_signers(self):
        """Test building from signer indices."""
        bitmap = SignerBitmap.from_signers([0, 1, 3], 4)
        assert bitmap.data == b"\x0b"
        assert bitmap.signer_count == 3
        assert bitmap.non_signer_count == 1

    def test_from_non_signers(self):
        """Test building from non-signer indices keeps padding bits set."""
        bitmap = SignerBitmap.from_non_signers([2], 4)
        assert bitmap.data == b"\xfb"
        assert bitmap.non_signer_indices() == (2,)

    def test_padding_ignored(self):
        """Test bits past the operator count do not count as signers."""
        assert SignerBitmap(b"\xff", 3).signer_count == 3

    def test_index_range(self):
        """Test out-of-range queries and constructors are rejected."""
        bitmap = SignerBitmap.from_signers([0], 4)
        with pytest.raises(InvalidParameterError):
            bitmap.is_signer(4)
        with pytest.raises(InvalidParameterError):
            SignerBitmap.from_signers([4], 4)
        with pytest.raises(InvalidParameterError):
            SignerBitmap.from_non_signers([-1], 4)


class TestQuorum:
    """Tests for the one-third abstention bound."""

    def test_max_non_signers(self):
        """Test floor(n / 3)."""
        assert [max_non_signers(n) for n in (1, 2, 3, 4, 6, 7, 256)] == [0, 0, 1, 1, 2, 2, 85]

    def test_is_quorum_met(self):
        """Test the bound is inclusive."""
        assert is_quorum_met(1, 4)
        assert not is_quorum_met(2, 4)
        assert is_quorum_met(0, 1)
        assert not is_quorum_met(1, 2)

    def test_check_quorum(self):
        """Test failure raises with details."""
        check_quorum(2, 6)
        with pytest.raises(QuorumNotMetError) as exc:
            check_quorum(3, 6)
        assert exc.value.details["tolerated"] == 2


class TestStakeEligibility:
    """Tests for per-round stake eligibility."""

    def test_same_round(self):
        """Test the captured round uses stake_weight."""
        entry = entry_for("a", 5, stake=40, next_round_stake_weight=0)
        assert entry.stake_weight_at(SNAPSHOT_ROUND) == 40

    def test_next_round(self):
        """Test the following round uses next_round_stake_weight."""
        entry = entry_for("a", 5, stake=40, next_round_stake_weight=70)
        assert entry.stake_weight_at(SNAPSHOT_ROUND + 1) == 70

    def test_next_round_defaults(self):
        """Test next-round weight falls back to stake_weight."""
        entry = entry_for("a", 5, stake=40)
        assert entry.stake_weight_at(SNAPSHOT_ROUND + 1) == 40

    def test_stale_rounds(self):
        """Test older or future snapshots are stale."""
        entry = entry_for("a", 5)
        assert entry.stake_weight_at(SNAPSHOT_ROUND + 2) is None
        assert entry.stake_weight_at(SNAPSHOT_ROUND - 1) is None
        assert not entry.has_minimum_stake_now(SNAPSHOT_ROUND + 2, 0)

    def test_minimum(self):
        """Test the minimum is inclusive and zero stake never qualifies."""
        assert entry_for("a", 5, stake=10).has_minimum_stake_now(SNAPSHOT_ROUND, 10)
        assert not entry_for("a", 5, stake=9).has_minimum_stake_now(SNAPSHOT_ROUND, 10)
        assert not entry_for("a", 5, stake=0).has_minimum_stake_now(SNAPSHOT_ROUND, 0)

    def test_negative_rejected(self):
        """Test negative stake is rejected."""
        with pytest.raises(InvalidParameterError):
            entry_for("a", 5, stake=-1)

    def test_check_signer_stake(self, snapshot):
        """Test signed weight sums only signers."""
        bitmap = SignerBitmap.from_signers([0, 1, 2], 4)
        assert check_signer_stake(snapshot, bitmap, SNAPSHOT_ROUND) == 3 * OPERATOR_STAKE

    def test_check_signer_stake_stale(self, snapshot):
        """Test a stale round rejects the first signer."""
        bitmap = SignerBitmap.from_signers([1, 2, 3], 4)
        with pytest.raises(InsufficientStakeError) as exc:
            check_signer_stake(snapshot, bitmap, SNAPSHOT_ROUND + 2)
        assert exc.value.details["index"] == 1

    def test_low_stake_non_signer_ignored(self, snapshot_entries):
        """Test only signers need eligible stake."""
        entries = list(snapshot_entries)
        entries[3] = entry_for("poor", 99, stake=MINIMUM_STAKE - 1)
        snapshot = RoundSnapshot.build(SNAPSHOT_ROUND, entries, minimum_stake=MINIMUM_STAKE)
        check_signer_stake(snapshot, SignerBitmap.from_signers([0, 1, 2], 4), SNAPSHOT_ROUND)
        with pytest.raises(InsufficientStakeError):
            check_signer_stake(snapshot, SignerBitmap.from_signers([1, 2, 3], 4), SNAPSHOT_ROUND)


class TestRoundSnapshot:
    """Tests for RoundSnapshot."""

    def test_build(self, snapshot, operators):
        """Test the cached aggregate is the sum of all keys."""
        expected = operators[0].g1_pubkey
        for op in operators[1:]:
            expected = expected.add(op.g1_pubkey)
        assert snapshot.aggregate_public_key() == expected
        assert snapshot.operator_count == 4
        assert snapshot.bitmap_length == 1
        assert snapshot.total_stake_weight == 4 * OPERATOR_STAKE

    def test_empty(self):
        """Test an empty snapshot has no aggregate."""
        snapshot = RoundSnapshot.build(1, [])
        assert snapshot.total_g1_pubkey is None
        with pytest.raises(EmptyOperatorSetError):
            snapshot.aggregate_public_key()

    def test_too_many(self):
        """Test the operator cap."""
        entries = [entry_for(f"op-{i}", i + 2) for i in range(3)]
        with pytest.raises(TooManyOperatorsError):
            RoundSnapshot.build(1, entries, max_operators=2)

    def test_duplicate(self):
        """Test operators are unique."""
        with pytest.raises(DuplicateOperatorError):
            RoundSnapshot.build(1, [entry_for("a", 2), entry_for("a", 3)])

    def test_index_of(self, snapshot):
        """Test operator lookup."""
        assert snapshot.index_of("operator-2") == 2
        with pytest.raises(OperatorNotFoundError):
            snapshot.index_of("nobody")

    def test_compute_aggregate_none(self):
        """Test no keys sums to None."""
        assert compute_aggregate_g1([]) is None

    @pytest.mark.timeout(300)
    def test_with_operator(self, snapshot_entries, operators):
        """Test incremental add matches a rebuild and checks the key pair."""
        base = RoundSnapshot.build(SNAPSHOT_ROUND, snapshot_entries[:3])
        grown = base.with_operator(snapshot_entries[3], operators[3].g2_pubkey)
        rebuilt = RoundSnapshot.build(SNAPSHOT_ROUND, snapshot_entries)
        assert grown.total_g1_pubkey == rebuilt.total_g1_pubkey
        assert grown.entries == rebuilt.entries

        with pytest.raises(KeyMismatchError):
            base.with_operator(snapshot_entries[3], operators[0].g2_pubkey)
        with pytest.raises(DuplicateOperatorError):
            base.with_operator(snapshot_entries[0])

    def test_with_operator_full(self, snapshot_entries):
        """Test adding past the cap."""
        base = RoundSnapshot.build(SNAPSHOT_ROUND, snapshot_entries[:2], max_operators=2)
        with pytest.raises(TooManyOperatorsError):
            base.with_operator(snapshot_entries[2])

    def test_with_operator_into_empty(self, snapshot_entries):
        """Test the first operator seeds the aggregate."""
        grown = RoundSnapshot.build(SNAPSHOT_ROUND, []).with_operator(snapshot_entries[0])
        assert grown.total_g1_pubkey == snapshot_entries[0].g1_pubkey

    def test_without_operator(self, snapshot, snapshot_entries):
        """Test removal matches a rebuild and shifts indices."""
        shrunk = snapshot.without_operator("operator-1")
        remaining = [snapshot_entries[0], snapshot_entries[2], snapshot_entries[3]]
        rebuilt = RoundSnapshot.build(SNAPSHOT_ROUND, remaining)
        assert shrunk.total_g1_pubkey == rebuilt.total_g1_pubkey
        assert shrunk.index_of("operator-2") == 1

    def test_without_last_operator(self, snapshot_entries):
        """Test removing the only operator clears the aggregate."""
        single = RoundSnapshot.build(SNAPSHOT_ROUND, snapshot_entries[:1])
        assert single.without_operator("operator-0").total_g1_pubkey is None

    def test_for_round(self, snapshot):
        """Test carrying a snapshot into another round."""
        moved = snapshot.for_round(SNAPSHOT_ROUND + 1)
        assert moved.round_number == SNAPSHOT_ROUND + 1
        assert moved.total_g1_pubkey == snapshot.total_g1_pubkey
        assert moved.minimum_stake == snapshot.minimum_stake


class TestReconcile:
    """Tests for reconcile_aggregate_key."""

    def test_all_signers(self, snapshot):
        """Test no non-signers returns the full aggregate."""
        bitmap = SignerBitmap.from_signers(range(4), 4)
        reconciled = reconcile_aggregate_key(snapshot.entries, bitmap, snapshot.aggregate_public_key())
        assert reconciled.apk1 == snapshot.aggregate_public_key()
        assert reconciled.non_signers_count == 0

    def test_one_non_signer(self, snapshot, operators):
        """Test the aggregate equals the sum of signer keys."""
        bitmap = SignerBitmap.from_non_signers([1], 4)
        reconciled = reconcile_aggregate_key(snapshot.entries, bitmap, snapshot.aggregate_public_key())
        expected = operators[0].g1_pubkey.add(operators[2].g1_pubkey).add(operators[3].g1_pubkey)
        assert reconciled.apk1 == expected
        assert reconciled.signer_indices == (0, 2, 3)
        assert reconciled.non_signer_indices == (1,)

    def test_two_non_signers(self, snapshot, operators):
        """Test several non-signers are subtracted together."""
        bitmap = SignerBitmap.from_signers([0, 3], 4)
        reconciled = reconcile_aggregate_key(snapshot.entries, bitmap, snapshot.aggregate_public_key())
        assert reconciled.apk1 == operators[0].g1_pubkey.add(operators[3].g1_pubkey)

    def test_operator_count_mismatch(self, snapshot):
        """Test the bitmap must describe the same operator set."""
        bitmap = SignerBitmap.from_signers([0], 3)
        with pytest.raises(InvalidBitmapError):
            reconcile_aggregate_key(snapshot.entries, bitmap, snapshot.aggregate_public_key())

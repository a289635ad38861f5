"""
test_state.py - Unit tests for LedgerState storage, snapshots and invariants
"""

import pytest

from lendpool import LedgerState, AccountState, PoolTotals


class TestLedgerStateStorage:

    def test_unknown_account_reads_empty(self):
        state = LedgerState()
        assert state.get_account("nobody") == AccountState()
        assert "nobody" not in state
        assert len(state) == 0

    def test_put_creates_account(self):
        state = LedgerState()
        state.put_account("alice", AccountState(deposit_principal=5))
        assert "alice" in state
        assert state.list_accounts() == {"alice"}

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            LedgerState().put_account("", AccountState())


class TestSnapshots:

    def test_restore_discards_later_writes(self):
        state = LedgerState()
        state.put_account("alice", AccountState(deposit_principal=5))
        state.set_totals(PoolTotals(total_liquidity=5))
        snap = state.snapshot()

        state.put_account("alice", AccountState(deposit_principal=9))
        state.put_account("bob", AccountState(collateral_posted=1))
        state.set_totals(PoolTotals(total_liquidity=9, total_collateral=1))

        state.restore(snap)
        assert state.get_account("alice").deposit_principal == 5
        assert "bob" not in state
        assert state.totals == PoolTotals(total_liquidity=5)

    def test_snapshot_is_isolated(self):
        state = LedgerState()
        snap = state.snapshot()
        state.put_account("alice", AccountState(deposit_principal=1))
        assert "alice" not in snap.accounts


class TestVerifyInvariants:

    def test_consistent_state_is_valid(self):
        state = LedgerState()
        state.put_account("a", AccountState(collateral_posted=3, debt_principal=1))
        state.put_account("b", AccountState(collateral_posted=4, debt_principal=2))
        state.set_totals(PoolTotals(total_collateral=7, total_debt_principal=3))
        result = state.verify_invariants()
        assert result["valid"]
        assert result["sums"] == {"total_collateral": 7, "total_debt_principal": 3}

    def test_mismatch_is_reported(self):
        state = LedgerState()
        state.put_account("a", AccountState(collateral_posted=3))
        state.set_totals(PoolTotals(total_collateral=4))
        result = state.verify_invariants()
        assert not result["valid"]
        [d] = result["discrepancies"]
        assert d["aggregate"] == "total_collateral"
        assert d["difference"] == 1

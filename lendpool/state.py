"""
state.py - Durable account and pool aggregates

LedgerState is the single owned aggregate behind a LendingPool: the account
map plus the pool totals. It holds no share balances (the ShareToken owns
those) and performs no validation beyond what the frozen records enforce;
the engines decide what is allowed, LedgerState only stores it.

Snapshots are cheap because AccountState and PoolTotals are immutable: a
snapshot is a shallow copy of the account map plus the totals reference.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any, List, Mapping, Set

from .core import AccountId, AccountState, PoolTotals


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Point-in-time copy of LedgerState used for rollback."""
    accounts: Mapping[AccountId, AccountState]
    totals: PoolTotals


class LedgerState:
    """
    Account records and pool aggregates.

    Accounts are created lazily: reading an unknown account returns an empty
    AccountState, and the account is stored on its first write. Accounts are
    never deleted.
    """

    def __init__(self):
        self._accounts: Dict[AccountId, AccountState] = {}
        self._totals: PoolTotals = PoolTotals()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_account(self, account: AccountId) -> AccountState:
        return self._accounts.get(account, AccountState())

    @property
    def totals(self) -> PoolTotals:
        return self._totals

    def list_accounts(self) -> Set[AccountId]:
        return set(self._accounts)

    def __contains__(self, account: AccountId) -> bool:
        return account in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put_account(self, account: AccountId, state: AccountState) -> None:
        if not account or not account.strip():
            raise ValueError("account id cannot be empty")
        self._accounts[account] = state

    def set_totals(self, totals: PoolTotals) -> None:
        self._totals = totals

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(accounts=dict(self._accounts), totals=self._totals)

    def restore(self, snapshot: StateSnapshot) -> None:
        self._accounts = dict(snapshot.accounts)
        self._totals = snapshot.totals

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Verify that the pool aggregates match the per-account records.

        Checks:
            total_collateral == sum(collateral_posted)
            total_debt_principal == sum(debt_principal)

        Accounts are summed in sorted order so results are deterministic.
        Liquidity is not compared with deposit principal: the share price
        floats with accrued value, so the two legitimately diverge.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every aggregate matches
            - 'totals': Dict[str, int] - current pool aggregates
            - 'sums': Dict[str, int] - recomputed per-account sums
            - 'discrepancies': List[Dict] - one entry per mismatch

        Example:
            result = state.verify_invariants()
            assert result['valid'], result['discrepancies']
        """
        ordered = [self._accounts[a] for a in sorted(self._accounts)]
        sums = {
            'total_collateral': sum(s.collateral_posted for s in ordered),
            'total_debt_principal': sum(s.debt_principal for s in ordered),
        }
        totals = self._totals.as_dict()

        discrepancies: List[Dict[str, Any]] = []
        for key, actual_sum in sums.items():
            if totals[key] != actual_sum:
                discrepancies.append({
                    'aggregate': key,
                    'recorded': totals[key],
                    'sum_of_accounts': actual_sum,
                    'difference': totals[key] - actual_sum,
                })

        return {
            'valid': len(discrepancies) == 0,
            'totals': totals,
            'sums': sums,
            'discrepancies': discrepancies,
        }

    def __repr__(self):
        return f"LedgerState({len(self._accounts)} accounts, {self._totals})"

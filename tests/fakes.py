"""
fakes.py - Test helpers for the lending pool

Provides:
- FakeView: minimal LedgerView with fixed state, for testing the compute_*
  functions without a full LendingPool
- FailingAsset / FailingShareToken: collaborators that fail on demand, for
  rollback tests
- RecordingSettlement: SettlementHandler that records its calls
- exact_cover: the collateral condition evaluated without rounding
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Set

from lendpool import (
    AccountChange, AccountState, InMemoryAsset, InMemoryShareToken, LedgerView,
    LendingPool, PendingOperation, PoolTotals, PriceQuote, RiskParameters,
    StaticPriceOracle, TotalsChange, TransferFailed, build_operation,
    NATIVE_UNIT,
)


ETH = NATIVE_UNIT
USDT = 10 ** 6
START = datetime(2025, 1, 1)


def make_pool(price: int = 2000, native=None, stable=None, share_token=None, **kwargs) -> LendingPool:
    """Create a pool with in-memory collaborators and funded participants."""
    native = native or InMemoryAsset("ETH", 18)
    stable = stable or InMemoryAsset("USDT", 6)
    for holder in ("alice", "bob", "carol"):
        native.mint(holder, 1_000 * ETH)
    stable.fund_custody(10_000_000 * USDT)
    return LendingPool(
        oracle=StaticPriceOracle(price),
        share_token=share_token or InMemoryShareToken(),
        native_asset=native,
        stable_asset=stable,
        initial_time=kwargs.pop("initial_time", START),
        **kwargs,
    )


def pool_fingerprint(pool: LendingPool) -> dict:
    """Everything observable about a pool, for before/after comparisons."""
    accounts = sorted(pool.list_accounts() | {"alice", "bob", "carol"})
    return {
        "accounts": {a: pool.get_account(a) for a in accounts},
        "totals": pool.get_totals(),
        "shares": {a: pool.share_balance_of(a) for a in accounts},
        "supply": pool.share_supply(),
        "native": {a: pool.native_asset.balance_of(a) for a in accounts + ["pool"]},
        "stable": {a: pool.stable_asset.balance_of(a) for a in accounts + ["pool"]},
        "events": len(pool.events),
    }


def exact_cover(collateral: int, debt: int, quote: PriceQuote, ratio: int, stable_decimals: int = 6) -> bool:
    """collateral * price >= debt * ratio / 100, cross-multiplied with no rounding."""
    return (
        collateral * quote.answer * 10 ** stable_decimals * 100
        >= debt * ratio * 10 ** (18 + quote.decimals)
    )


class FakeView:
    """
    Minimal LedgerView implementation for testing the engines.

    Example:
        view = FakeView(
            accounts={'bob': AccountState(collateral_posted=10 * ETH)},
            price=PriceQuote.from_whole(2000),
            time=datetime(2025, 1, 1),
        )
        compute_borrow(view, 'bob', 10_000 * USDT)
    """

    def __init__(
        self,
        accounts: Optional[Dict[str, AccountState]] = None,
        totals: Optional[PoolTotals] = None,
        shares: Optional[Dict[str, int]] = None,
        price: Optional[PriceQuote] = None,
        risk: Optional[RiskParameters] = None,
        stable_decimals: int = 6,
        time: Optional[datetime] = None,
    ):
        self._accounts = accounts or {}
        self._totals = totals or PoolTotals()
        self._shares = shares or {}
        self._price = price or PriceQuote.from_whole(2000)
        self._risk = risk or RiskParameters()
        self._stable_decimals = stable_decimals
        self._time = time or datetime(2025, 1, 1)

    @property
    def current_time(self) -> datetime:
        return self._time

    @property
    def risk(self) -> RiskParameters:
        return self._risk

    @property
    def stable_decimals(self) -> int:
        return self._stable_decimals

    def get_account(self, account: str) -> AccountState:
        return self._accounts.get(account, AccountState())

    def get_totals(self) -> PoolTotals:
        return self._totals

    def share_balance_of(self, account: str) -> int:
        return self._shares.get(account, 0)

    def share_supply(self) -> int:
        return sum(self._shares.values())

    def latest_price(self) -> PriceQuote:
        return self._price

    def list_accounts(self) -> Set[str]:
        return set(self._accounts)


class FailingAsset(InMemoryAsset):
    """InMemoryAsset whose transfers raise TransferFailed while ``fail`` is set."""

    def __init__(self, symbol: str, decimals: int):
        super().__init__(symbol, decimals)
        self.fail = False

    def transfer_in(self, account, amount):
        if self.fail:
            raise TransferFailed(f"{self.symbol}: transfer_in disabled")
        super().transfer_in(account, amount)

    def transfer_out(self, account, amount):
        if self.fail:
            raise TransferFailed(f"{self.symbol}: transfer_out disabled")
        super().transfer_out(account, amount)


class FailingShareToken(InMemoryShareToken):
    """InMemoryShareToken whose mints raise TransferFailed while ``fail`` is set."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def mint(self, account, amount):
        if self.fail:
            raise TransferFailed("share mint disabled")
        super().mint(account, amount)


class RecordingSettlement:
    """
    SettlementHandler that records which accounts it settled.

    Settlement writes the position's debt off against its collateral: the
    debt and collateral are zeroed and removed from the pool totals. No
    assets move.
    """

    def __init__(self):
        self.settled: List[str] = []

    def settle(self, view: LedgerView, account: str) -> PendingOperation:
        self.settled.append(account)
        old = view.get_account(account)
        new = replace(old, collateral_posted=0, debt_principal=0, accrued_interest=0,
                      debt_opened_at=None)
        old_totals = view.get_totals()
        new_totals = replace(
            old_totals,
            total_collateral=old_totals.total_collateral - old.collateral_posted,
            total_debt_principal=old_totals.total_debt_principal - old.debt_principal,
        )
        return build_operation(
            view, "settle",
            account_changes=[AccountChange(account, old, new)],
            totals_change=TotalsChange(old_totals, new_totals),
        )

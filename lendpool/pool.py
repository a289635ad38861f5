"""
pool.py - Stateful lending pool engine

The LendingPool class is the central state manager of the accounting engine.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements the LedgerView protocol for safe read-only access by the
      liquidity and credit engines
    - Executes pending operations atomically: ledger changes, share mints and
      burns, then asset transfers; any failure rolls every step back
    - Serializes all operations and reads behind one lock
    - Tracks logical time for interest accrual
    - Records one event per applied operation in the EventLog
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set
import logging
import threading

from .core import (
    AccountId, AccountState, AssetKind, AssetLedger, PendingOperation, PoolTotals,
    ShareAction, ShareActionKind, ShareToken, Transfer, TransferDirection,
    NATIVE_DECIMALS,
    LendingPoolError, PositionNotLiquidatable, StaleOperation,
)
from .credit import (
    SettlementHandler,
    compute_borrow, compute_collateral_deposit, compute_collateral_withdrawal,
)
from . import credit
from .events import EventLog, PoolEvent
from .liquidity import (
    calculate_redemption_value, compute_deposit, compute_withdrawal, redeemable_value,
)
from .oracle import PriceOracle, PriceQuote
from .risk import RiskParameters
from .settings import PoolSettings
from .state import LedgerState


logger = logging.getLogger(__name__)


class LendingPool:
    """
    Collateralized lending pool with atomic operations and an event trail.

    Implements the LedgerView protocol, allowing the pool to be passed to the
    pure compute_* functions, which access only read-only methods.

    Design Principles:
        - Always validates: every operation is validated by its compute_*
          function, then re-checked for staleness before it is applied.
        - All-or-nothing: collaborator calls run after the ledger update and
          are compensated in reverse order if a later step fails.
        - Always records: every applied operation appends exactly one event.

    Thread Safety:
        A single re-entrant lock guards the whole pool. Operations and reads
        both take it, so a read never observes a half-applied operation.

    Example:
        pool = LendingPool(
            oracle=StaticPriceOracle(2000),
            share_token=InMemoryShareToken(),
            native_asset=InMemoryAsset("ETH", 18),
            stable_asset=InMemoryAsset("USDT", 6),
        )
        pool.deposit("alice", 10 * NATIVE_UNIT)
        pool.post_collateral("bob", 10 * NATIVE_UNIT)
        pool.borrow("bob", 10_000 * 10**6)
    """

    def __init__(
        self,
        oracle: PriceOracle,
        share_token: ShareToken,
        native_asset: AssetLedger,
        stable_asset: AssetLedger,
        risk: Optional[RiskParameters] = None,
        name: str = "main",
        initial_time: Optional[datetime] = None,
        verbose: bool = False,
    ):
        """
        Create a pool.

        Args:
            oracle: Source of native/stable quotes
            share_token: Token minted to and burned from depositors
            native_asset: Transfer primitive for deposits, payouts and collateral
            stable_asset: Transfer primitive for loans
            risk: Risk configuration (default: RiskParameters())
            name: Pool identifier used in log messages
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Log a boxed summary of every applied operation at INFO

        Raises:
            ValueError: if the native asset does not use NATIVE_DECIMALS
        """
        if native_asset.decimals != NATIVE_DECIMALS:
            raise ValueError(
                f"native asset must have {NATIVE_DECIMALS} decimals, got {native_asset.decimals}"
            )
        self.name = name
        self.oracle = oracle
        self.share_token = share_token
        self.native_asset = native_asset
        self.stable_asset = stable_asset
        self._risk = risk or RiskParameters()
        self._state = LedgerState()
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self._lock = threading.RLock()
        self.events = EventLog()
        self.verbose = verbose

    @classmethod
    def from_settings(
        cls,
        settings: PoolSettings,
        oracle: PriceOracle,
        share_token: ShareToken,
        native_asset: AssetLedger,
        stable_asset: AssetLedger,
        initial_time: Optional[datetime] = None,
    ) -> LendingPool:
        """
        Create a pool configured from PoolSettings.

        Raises:
            ValueError: if the stable asset's decimals disagree with the settings
        """
        if stable_asset.decimals != settings.stable_decimals:
            raise ValueError(
                f"stable asset has {stable_asset.decimals} decimals, "
                f"settings expect {settings.stable_decimals}"
            )
        return cls(
            oracle=oracle,
            share_token=share_token,
            native_asset=native_asset,
            stable_asset=stable_asset,
            risk=settings.risk_parameters(),
            name=settings.name,
            initial_time=initial_time,
            verbose=settings.verbose,
        )

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the pool."""
        return self._current_time

    @property
    def risk(self) -> RiskParameters:
        return self._risk

    @property
    def stable_decimals(self) -> int:
        return self.stable_asset.decimals

    def get_account(self, account: AccountId) -> AccountState:
        with self._lock:
            return self._state.get_account(account)

    def get_totals(self) -> PoolTotals:
        with self._lock:
            return self._state.totals

    def share_balance_of(self, account: AccountId) -> int:
        with self._lock:
            return self.share_token.balance_of(account)

    def share_supply(self) -> int:
        with self._lock:
            return self.share_token.total_supply()

    def latest_price(self) -> PriceQuote:
        """Fresh quote from the oracle (no caching)."""
        return self.oracle.quote()

    def list_accounts(self) -> Set[AccountId]:
        with self._lock:
            return self._state.list_accounts()

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the pool's logical clock.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def deposit(self, account: AccountId, amount: int) -> PoolEvent:
        """Deposit native liquidity and receive pool shares. Emits Deposited."""
        return self._run("deposit", account, lambda: compute_deposit(self, account, amount))

    def withdraw(self, account: AccountId, withdraw_amount: int, shares_burned: int) -> PoolEvent:
        """Withdraw principal and redeem shares. Emits DepositWithdrawn."""
        return self._run(
            "withdraw", account,
            lambda: compute_withdrawal(self, account, withdraw_amount, shares_burned),
        )

    def post_collateral(self, account: AccountId, amount: int) -> PoolEvent:
        """Post native collateral. Emits CollateralDeposited."""
        return self._run(
            "post_collateral", account, lambda: compute_collateral_deposit(self, account, amount)
        )

    def withdraw_collateral(self, account: AccountId, amount: int) -> PoolEvent:
        """Withdraw collateral not backing debt. Emits CollateralWithdrawn."""
        return self._run(
            "withdraw_collateral", account,
            lambda: compute_collateral_withdrawal(self, account, amount),
        )

    def borrow(self, account: AccountId, stable_amount: int) -> PoolEvent:
        """Borrow stable units against posted collateral. Emits LoanBorrowed."""
        return self._run("borrow", account, lambda: compute_borrow(self, account, stable_amount))

    def liquidate(self, account: AccountId, handler: SettlementHandler) -> Optional[PoolEvent]:
        """
        Settle a liquidatable position through an external handler.

        The pool checks the liquidation predicate, lets the handler build the
        settlement operation, and executes it atomically.

        Raises:
            PositionNotLiquidatable: if the position passes the predicate
        """
        with self._lock:
            if not credit.is_liquidatable(self, account):
                logger.warning("%s: REJECTED liquidate %s: position is healthy", self.name, account)
                raise PositionNotLiquidatable(f"{account} is not liquidatable")
            return self.execute(handler.settle(self, account))

    def _run(
        self,
        operation: str,
        account: AccountId,
        compute: Callable[[], PendingOperation],
    ) -> Optional[PoolEvent]:
        with self._lock:
            try:
                pending = compute()
            except LendingPoolError as e:
                logger.warning("%s: REJECTED %s for %s: %s", self.name, operation, account, e)
                raise
            return self.execute(pending)

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def execute(self, pending: PendingOperation) -> Optional[PoolEvent]:
        """
        Apply a PendingOperation atomically.

        Order of application:
            1. Staleness check (the operation's "old" snapshots must match)
            2. Account and pool aggregate updates
            3. Share mints/burns
            4. Asset transfers
            5. Event appended to the log

        If any step from 2 to 4 raises, the ledger is restored from a
        snapshot, the already-performed collaborator calls are reversed in the
        opposite order, and the original exception propagates. A reversal
        that itself fails is logged and does not stop the others.

        Returns:
            The recorded event (None for an operation without an event)

        Raises:
            StaleOperation: if the operation was computed against other state
                or at another time
            TransferFailed: (or any collaborator error) after full rollback
        """
        with self._lock:
            if pending.is_empty():
                return None
            self._check_fresh(pending)

            snapshot = self._state.snapshot()
            compensations: List[Callable[[], None]] = []
            try:
                self._apply_ledger_changes(pending)
                for action in pending.share_actions:
                    self._apply_share_action(action)
                    compensations.append(lambda a=action.inverse(): self._apply_share_action(a))
                for transfer in pending.transfers:
                    self._apply_transfer(transfer)
                    compensations.append(lambda t=transfer.inverse(): self._apply_transfer(t))
            except Exception as e:
                logger.error("%s: ROLLBACK %s: %s", self.name, pending.name, e)
                self._state.restore(snapshot)
                self._compensate(pending, compensations)
                raise

            if pending.event is not None:
                self.events.append(pending.event)

            if self.verbose:
                logger.info("%s: APPLIED\n%s", self.name, pending.describe())
            else:
                logger.info("%s: APPLIED %r", self.name, pending)
            return pending.event

    def _compensate(self, pending: PendingOperation, compensations: List[Callable[[], None]]) -> None:
        # Every compensation is attempted; the caller re-raises the original error.
        for compensate in reversed(compensations):
            try:
                compensate()
            except Exception:
                logger.exception("%s: COMPENSATION FAILED for %s", self.name, pending.name)

    def _check_fresh(self, pending: PendingOperation) -> None:
        if pending.timestamp != self._current_time:
            raise StaleOperation(
                f"{pending.name} computed at {pending.timestamp}, pool time is {self._current_time}"
            )
        for change in pending.account_changes:
            current = self._state.get_account(change.account)
            if current != change.old:
                raise StaleOperation(f"{pending.name}: account {change.account} changed since compute")
        if pending.totals_change is not None and pending.totals_change.old != self._state.totals:
            raise StaleOperation(f"{pending.name}: pool totals changed since compute")

    def _apply_ledger_changes(self, pending: PendingOperation) -> None:
        for change in pending.account_changes:
            self._state.put_account(change.account, change.new)
        if pending.totals_change is not None:
            self._state.set_totals(pending.totals_change.new)

    def _apply_share_action(self, action: ShareAction) -> None:
        if action.kind is ShareActionKind.MINT:
            self.share_token.mint(action.account, action.amount)
        else:
            self.share_token.burn(action.account, action.amount)

    def _apply_transfer(self, transfer: Transfer) -> None:
        asset = self.native_asset if transfer.asset is AssetKind.NATIVE else self.stable_asset
        if transfer.direction is TransferDirection.IN:
            asset.transfer_in(transfer.account, transfer.amount)
        else:
            asset.transfer_out(transfer.account, transfer.amount)

    # ========================================================================
    # READS
    # ========================================================================

    def deposit_principal_of(self, account: AccountId) -> int:
        return self.get_account(account).deposit_principal

    def collateral_of(self, account: AccountId) -> int:
        return self.get_account(account).collateral_posted

    def debt_of(self, account: AccountId) -> int:
        """Outstanding debt principal in stable units (no interest)."""
        return self.get_account(account).debt_principal

    def debt_with_interest_of(self, account: AccountId) -> int:
        with self._lock:
            return credit.debt_with_interest(self, account)

    def debt_in_native_of(self, account: AccountId) -> int:
        with self._lock:
            return credit.debt_in_native(self, account)

    def available_collateral_of(self, account: AccountId) -> int:
        with self._lock:
            return credit.available_collateral(self, account)

    def borrow_limit_of(self, account: AccountId) -> int:
        with self._lock:
            return credit.borrow_limit(self, account)

    def required_collateral_for(self, stable_amount: int) -> int:
        """Native collateral needed at origination for a loan of ``stable_amount``."""
        return credit.collateral_required_for(self, stable_amount)

    def redeemable_value_of(self, account: AccountId) -> int:
        with self._lock:
            return redeemable_value(self, account)

    def is_liquidatable(self, account: AccountId) -> bool:
        with self._lock:
            return credit.is_liquidatable(self, account)

    def liquidatable_accounts(self) -> List[AccountId]:
        with self._lock:
            return credit.liquidatable_accounts(self)

    def total_liquidity(self) -> int:
        return self.get_totals().total_liquidity

    def total_collateral(self) -> int:
        return self.get_totals().total_collateral

    def total_debt_principal(self) -> int:
        return self.get_totals().total_debt_principal

    def utilization_bps(self) -> int:
        with self._lock:
            return credit.utilization_bps(self)

    def borrow_rate_bps(self) -> int:
        with self._lock:
            return credit.borrow_rate_bps(self)

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Verify the ledger invariants.

        Adds the share-solvency check to LedgerState.verify_invariants():
        the whole share supply, redeemed at the current price, never claims
        more native value than the pool holds.

        Returns:
            Dict with 'valid', 'totals', 'sums', 'share_supply', 'discrepancies'.
        """
        with self._lock:
            result = self._state.verify_invariants()
            supply = self.share_token.total_supply()
            liquidity = self._state.totals.total_liquidity
            claim = calculate_redemption_value(supply, supply, liquidity)
            if claim > liquidity:
                result['discrepancies'].append({
                    'aggregate': 'total_liquidity',
                    'recorded': liquidity,
                    'share_claims': claim,
                    'difference': liquidity - claim,
                })
                result['valid'] = False
            result['share_supply'] = supply
            return result

    def __repr__(self):
        totals = self.get_totals()
        return (
            f"LendingPool({self.name}: liquidity={totals.total_liquidity}, "
            f"collateral={totals.total_collateral}, debt={totals.total_debt_principal})"
        )

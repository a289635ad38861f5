"""
credit.py - Collateral, borrowing limits, interest and the liquidation predicate

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters (quote, ratios, timestamps)
   - No LedgerView, no hidden state
   - Trivially testable, stress-testable with any price

2. OPERATION BUILDERS (compute_*):
   - Read the pool once through a LedgerView
   - Validate, raising a typed LendingPoolError on rejection
   - Return a PendingOperation for LendingPool.execute()

3. VIEW READS (available_collateral, debt_with_interest, is_liquidatable, ...):
   - Load from a LedgerView, then call the pure functions

Key Formulas:
    collateral_required(debt) = ceil(native(debt) * collateralization_ratio / 100)
    available_collateral      = collateral_posted - collateral_required(debt_principal)
    utilization_bps           = native(total_debt_principal) * 10_000 / total_liquidity
    pending_interest          = debt_principal * rate_bps * elapsed_seconds / (10_000 * year)
    debt_with_interest        = debt_principal + accrued_interest + pending_interest
    liquidatable             <=> collateral_posted < ceil(native(debt_with_interest) * liquidation_threshold / 100)

The collateral check is prospective: it runs when debt is created or
increased and when collateral is withdrawn, never on a price tick.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from .core import (
    AccountChange, AccountId, AccountState, LedgerView, PendingOperation,
    TotalsChange, Transfer, AssetKind, TransferDirection,
    BPS, MAX_AMOUNT, NATIVE_DECIMALS, PERCENT, SECONDS_PER_YEAR,
    ArithmeticOverflow, ExceedsAvailableCollateral, InsufficientCollateral, ZeroAmount,
    build_operation, checked_add, checked_sub, mul_div, mul_div_up, require_positive,
)
from .events import CollateralDeposited, CollateralWithdrawn, LoanBorrowed
from .oracle import PriceQuote, convert_stable_to_native


# ============================================================================
# PURE CALCULATION FUNCTIONS - No LedgerView, All Inputs Explicit
# ============================================================================

def calculate_collateral_required(
    debt: int,
    quote: PriceQuote,
    ratio: int,
    stable_decimals: int,
) -> int:
    """
    Native collateral required to back ``debt`` stable units at ``ratio`` percent.

    PURE FUNCTION - All inputs explicit.

    Used with the collateralization ratio for origination and with the
    liquidation threshold for the liquidation predicate.

    Computed in one step and rounded up, so that
        collateral >= required  <=>  collateral * price >= debt * ratio / 100
    holds exactly in integers.
    """
    return mul_div_up(
        debt,
        ratio * 10 ** (NATIVE_DECIMALS + quote.decimals),
        PERCENT * quote.answer * 10 ** stable_decimals,
    )


def calculate_available_collateral(
    collateral_posted: int,
    debt_principal: int,
    quote: PriceQuote,
    ratio: int,
    stable_decimals: int,
) -> int:
    """
    Collateral not needed to back the existing debt.

    PURE FUNCTION - All inputs explicit.

    Returns 0 (not a negative number) when a price move has left the
    position below the collateralization ratio.
    """
    required = calculate_collateral_required(debt_principal, quote, ratio, stable_decimals)
    if required >= collateral_posted:
        return 0
    return collateral_posted - required


def calculate_borrow_limit(
    collateral_posted: int,
    debt_principal: int,
    quote: PriceQuote,
    ratio: int,
    stable_decimals: int,
) -> int:
    """
    Largest additional stable amount the collateral supports right now.

    PURE FUNCTION - All inputs explicit.

    Exact: borrowing the returned amount passes the
    collateral check and borrowing one unit more fails it. Found by doubling
    then bisecting, since collateral_required is monotonic in debt.
    """
    def fits(extra: int) -> bool:
        total = debt_principal + extra
        if total > MAX_AMOUNT:
            return False
        try:
            required = calculate_collateral_required(total, quote, ratio, stable_decimals)
        except ArithmeticOverflow:
            return False
        return required <= collateral_posted

    if not fits(0):
        return 0

    lo, hi = 0, 1
    while fits(hi):
        lo, hi = hi, hi * 2
    # Invariant: fits(lo) and not fits(hi)
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if fits(mid):
            lo = mid
        else:
            hi = mid
    return lo


def calculate_utilization_bps(
    total_debt_principal: int,
    total_liquidity: int,
    quote: PriceQuote,
    stable_decimals: int,
) -> int:
    """
    Share of pooled liquidity lent out, in basis points, capped at 10_000.

    PURE FUNCTION - All inputs explicit.

    Debt is converted to native units first so both sides share a unit.
    With debt outstanding but no liquidity, utilization is 100%.
    """
    if total_debt_principal == 0:
        return 0
    if total_liquidity == 0:
        return BPS
    native_debt = convert_stable_to_native(total_debt_principal, quote, stable_decimals)
    return min(BPS, mul_div(native_debt, BPS, total_liquidity))


def calculate_pending_interest(
    debt_principal: int,
    rate_bps: int,
    debt_opened_at: Optional[datetime],
    current_time: Optional[datetime],
) -> int:
    """
    Interest accrued on ``debt_principal`` since the last debt change.

    PURE FUNCTION - All inputs explicit.

    Simple interest, whole seconds, rounded down:
        debt_principal * rate_bps * elapsed_seconds / (10_000 * SECONDS_PER_YEAR)

    Returns:
        Pending interest in stable units (0 if no debt, no rate or no time elapsed)
    """
    if (
        debt_opened_at is None
        or current_time is None
        or debt_principal == 0
        or rate_bps <= 0
    ):
        return 0

    elapsed = int((current_time - debt_opened_at).total_seconds())
    if elapsed <= 0:
        return 0

    return mul_div(debt_principal * rate_bps, elapsed, BPS * SECONDS_PER_YEAR)


def calculate_debt_with_interest(
    state: AccountState,
    rate_bps: int,
    current_time: Optional[datetime],
) -> int:
    """
    Total debt including crystallised and pending interest.

    PURE FUNCTION - All inputs explicit.

    Returns:
        debt_principal + accrued_interest + pending_interest
    """
    pending = calculate_pending_interest(
        state.debt_principal, rate_bps, state.debt_opened_at, current_time
    )
    return checked_add(checked_add(state.debt_principal, state.accrued_interest), pending)


def calculate_is_liquidatable(
    state: AccountState,
    debt_with_interest: int,
    quote: PriceQuote,
    liquidation_threshold: int,
    stable_decimals: int,
) -> bool:
    """
    True if the position's collateral no longer covers its debt at the threshold.

    PURE FUNCTION - All inputs explicit. Accounts without debt are never liquidatable.
    """
    if debt_with_interest == 0:
        return False
    required = calculate_collateral_required(
        debt_with_interest, quote, liquidation_threshold, stable_decimals
    )
    return state.collateral_posted < required


# ============================================================================
# VIEW READS - Load from LedgerView, then calculate
# ============================================================================

def utilization_bps(view: LedgerView) -> int:
    totals = view.get_totals()
    return calculate_utilization_bps(
        totals.total_debt_principal, totals.total_liquidity,
        view.latest_price(), view.stable_decimals,
    )


def borrow_rate_bps(view: LedgerView) -> int:
    """Current annual borrow rate from the pool's utilization."""
    return view.risk.borrow_rate_bps(utilization_bps(view))


def collateral_required_for(view: LedgerView, debt: int) -> int:
    """Native collateral required at origination for ``debt`` stable units."""
    return calculate_collateral_required(
        debt, view.latest_price(), view.risk.collateralization_ratio, view.stable_decimals
    )


def available_collateral(view: LedgerView, account: AccountId) -> int:
    state = view.get_account(account)
    return calculate_available_collateral(
        state.collateral_posted, state.debt_principal,
        view.latest_price(), view.risk.collateralization_ratio, view.stable_decimals,
    )


def borrow_limit(view: LedgerView, account: AccountId) -> int:
    """Largest stable amount ``account`` can borrow right now."""
    state = view.get_account(account)
    return calculate_borrow_limit(
        state.collateral_posted, state.debt_principal,
        view.latest_price(), view.risk.collateralization_ratio, view.stable_decimals,
    )


def debt_with_interest(view: LedgerView, account: AccountId) -> int:
    return calculate_debt_with_interest(
        view.get_account(account), borrow_rate_bps(view), view.current_time
    )


def debt_in_native(view: LedgerView, account: AccountId) -> int:
    """Outstanding debt principal valued in native units at the current price."""
    return convert_stable_to_native(
        view.get_account(account).debt_principal, view.latest_price(), view.stable_decimals
    )


def is_liquidatable(view: LedgerView, account: AccountId) -> bool:
    state = view.get_account(account)
    return calculate_is_liquidatable(
        state,
        debt_with_interest(view, account),
        view.latest_price(),
        view.risk.liquidation_threshold,
        view.stable_decimals,
    )


def liquidatable_accounts(view: LedgerView) -> List[AccountId]:
    """All accounts currently failing the liquidation predicate, sorted."""
    return [a for a in sorted(view.list_accounts()) if is_liquidatable(view, a)]


# ============================================================================
# OPERATION BUILDERS
# ============================================================================

def compute_collateral_deposit(view: LedgerView, account: AccountId, amount: int) -> PendingOperation:
    """
    Build a collateral posting of ``amount`` native units.

    Raises:
        ZeroAmount: if amount <= 0
    """
    require_positive(amount, ZeroAmount)

    old_account = view.get_account(account)
    old_totals = view.get_totals()
    new_account = replace(
        old_account,
        collateral_posted=checked_add(old_account.collateral_posted, amount),
    )
    new_totals = replace(
        old_totals,
        total_collateral=checked_add(old_totals.total_collateral, amount),
    )

    return build_operation(
        view,
        "post_collateral",
        account_changes=[AccountChange(account, old_account, new_account)],
        totals_change=TotalsChange(old_totals, new_totals),
        transfers=[Transfer(AssetKind.NATIVE, TransferDirection.IN, account, amount)],
        event=CollateralDeposited(account, view.current_time, amount=amount),
    )


def compute_borrow(view: LedgerView, account: AccountId, stable_amount: int) -> PendingOperation:
    """
    Build a loan of ``stable_amount`` stable units against posted collateral.

    Interest pending on the existing debt is crystallised into
    accrued_interest before debt_opened_at is reset, so a top-up never
    forgives interest already earned.

    Effects when executed:
        account.debt_principal += stable_amount
        account.debt_opened_at = now
        total_debt_principal += stable_amount
        stable transfer pool -> account
        emit LoanBorrowed(account, stable_amount, native value of stable_amount)

    Raises:
        ZeroAmount: if stable_amount <= 0
        InsufficientCollateral: if collateral does not cover the new debt
            at the collateralization ratio
    """
    require_positive(stable_amount, ZeroAmount, "stable_amount")

    quote = view.latest_price()
    risk = view.risk
    now = view.current_time
    old_account = view.get_account(account)
    new_debt = checked_add(old_account.debt_principal, stable_amount)

    required = calculate_collateral_required(
        new_debt, quote, risk.collateralization_ratio, view.stable_decimals
    )
    if old_account.collateral_posted < required:
        raise InsufficientCollateral(
            f"{account}: debt of {new_debt} requires {required} collateral, "
            f"{old_account.collateral_posted} posted"
        )

    pending = calculate_pending_interest(
        old_account.debt_principal, borrow_rate_bps(view), old_account.debt_opened_at, now
    )
    new_account = replace(
        old_account,
        debt_principal=new_debt,
        accrued_interest=checked_add(old_account.accrued_interest, pending),
        debt_opened_at=now,
    )
    old_totals = view.get_totals()
    new_totals = replace(
        old_totals,
        total_debt_principal=checked_add(old_totals.total_debt_principal, stable_amount),
    )
    native_value = convert_stable_to_native(stable_amount, quote, view.stable_decimals)

    return build_operation(
        view,
        "borrow",
        account_changes=[AccountChange(account, old_account, new_account)],
        totals_change=TotalsChange(old_totals, new_totals),
        transfers=[Transfer(AssetKind.STABLE, TransferDirection.OUT, account, stable_amount)],
        event=LoanBorrowed(account, now, stable_amount=stable_amount, native_value=native_value),
    )


def compute_collateral_withdrawal(view: LedgerView, account: AccountId, amount: int) -> PendingOperation:
    """
    Build a withdrawal of ``amount`` native units of posted collateral.

    Raises:
        ZeroAmount: if amount <= 0
        ExceedsAvailableCollateral: if amount is more than the collateral
            not needed to back existing debt
    """
    require_positive(amount, ZeroAmount)

    available = available_collateral(view, account)
    if amount > available:
        raise ExceedsAvailableCollateral(
            f"{account}: withdrawal of {amount} exceeds available collateral {available}"
        )

    old_account = view.get_account(account)
    old_totals = view.get_totals()
    new_account = replace(
        old_account,
        collateral_posted=checked_sub(old_account.collateral_posted, amount),
    )
    new_totals = replace(
        old_totals,
        total_collateral=checked_sub(old_totals.total_collateral, amount),
    )

    return build_operation(
        view,
        "withdraw_collateral",
        account_changes=[AccountChange(account, old_account, new_account)],
        totals_change=TotalsChange(old_totals, new_totals),
        transfers=[Transfer(AssetKind.NATIVE, TransferDirection.OUT, account, amount)],
        event=CollateralWithdrawn(account, view.current_time, amount=amount),
    )


# ============================================================================
# SETTLEMENT EXTENSION POINT
# ============================================================================

@runtime_checkable
class SettlementHandler(Protocol):
    """
    Extension point for repaying or liquidating a position.

    The engine exposes the liquidation predicate and the data behind it but
    defines no seizure, incentive or repayment mechanics. A handler builds
    the PendingOperation that settles ``account``; LendingPool.liquidate()
    checks the predicate and executes the result atomically like any other
    operation.
    """

    def settle(self, view: LedgerView, account: AccountId) -> PendingOperation:
        ...

"""
liquidity.py - Deposits, withdrawals and pool-share math

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters
   - No LedgerView, no hidden state
   - Example: calculate_shares_to_mint(amount, supply, liquidity) -> int

2. OPERATION BUILDERS (compute_*):
   - Read the pool once through a LedgerView
   - Validate, raising a typed LendingPoolError on rejection
   - Return a PendingOperation for LendingPool.execute()

Key Formulas:
    bootstrap mint     = amount // NATIVE_UNIT                  (share supply == 0)
    mint               = amount * share_supply // total_liquidity
    redemption_value   = shares * total_liquidity // share_supply
    withdrawal payout  = withdraw_amount + redemption_value

Every division floors, so a depositor can never redeem more than the pool
holds on their behalf, and a later deposit never changes the redemption
value of shares already outstanding.
"""

from __future__ import annotations
from dataclasses import replace

from .core import (
    AccountChange, AccountId, LedgerView, PendingOperation, ShareAction,
    ShareActionKind, TotalsChange, Transfer, AssetKind, TransferDirection,
    NATIVE_UNIT,
    ArithmeticOverflow, InsufficientPrincipal, InsufficientShares, InvalidWithdrawalParameters,
    ZeroAmount,
    build_operation, checked_add, checked_sub, mul_div, require_positive,
)
from .events import Deposited, DepositWithdrawn


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_shares_to_mint(amount: int, share_supply: int, total_liquidity: int) -> int:
    """
    Shares issued for a deposit of ``amount`` native units.

    PURE FUNCTION - All inputs explicit.

    With no shares outstanding the pool bootstraps at one share per whole
    native unit. Otherwise shares are issued pro rata to the liquidity
    already held, so existing holders are neither diluted nor enriched.

    Raises:
        ArithmeticOverflow: if shares are outstanding but the pool holds no
            liquidity (the share price is zero, so the mint is unbounded)
    """
    if share_supply == 0:
        return amount // NATIVE_UNIT
    if total_liquidity == 0:
        raise ArithmeticOverflow(
            f"{share_supply} shares outstanding against zero liquidity; mint is unbounded"
        )
    return mul_div(amount, share_supply, total_liquidity)


def calculate_redemption_value(shares: int, share_supply: int, total_liquidity: int) -> int:
    """
    Native value currently represented by ``shares``.

    PURE FUNCTION - All inputs explicit.

    May exceed the shares' original cost if the pool has accrued income.
    Returns 0 when no shares are outstanding.
    """
    if share_supply == 0:
        return 0
    return mul_div(shares, total_liquidity, share_supply)


# ============================================================================
# OPERATION BUILDERS
# ============================================================================

def compute_deposit(view: LedgerView, account: AccountId, amount: int) -> PendingOperation:
    """
    Build a deposit of ``amount`` native units by ``account``.

    Effects when executed:
        total_liquidity += amount
        account.deposit_principal += amount
        mint shares to account
        native transfer account -> pool
        emit Deposited

    Raises:
        ZeroAmount: if amount <= 0
        ArithmeticOverflow: if any total would exceed MAX_AMOUNT, or shares
            are outstanding against zero liquidity
    """
    require_positive(amount, ZeroAmount)

    old_account = view.get_account(account)
    old_totals = view.get_totals()
    shares = calculate_shares_to_mint(amount, view.share_supply(), old_totals.total_liquidity)

    new_account = replace(
        old_account,
        deposit_principal=checked_add(old_account.deposit_principal, amount),
    )
    new_totals = replace(
        old_totals,
        total_liquidity=checked_add(old_totals.total_liquidity, amount),
    )

    share_actions = []
    if shares > 0:
        share_actions.append(ShareAction(ShareActionKind.MINT, account, shares))

    return build_operation(
        view,
        "deposit",
        account_changes=[AccountChange(account, old_account, new_account)],
        totals_change=TotalsChange(old_totals, new_totals),
        share_actions=share_actions,
        transfers=[Transfer(AssetKind.NATIVE, TransferDirection.IN, account, amount)],
        event=Deposited(account, view.current_time, amount=amount, shares_minted=shares),
    )


def compute_withdrawal(
    view: LedgerView,
    account: AccountId,
    withdraw_amount: int,
    shares_burned: int,
) -> PendingOperation:
    """
    Build a withdrawal of principal plus the redemption of pool shares.

    Principal and shares are two independent axes: a participant may take
    back part of their stake while keeping shares for future yield, or
    redeem shares while leaving principal in place (both must be > 0 here).

    Effects when executed:
        payout = withdraw_amount + redemption_value(shares_burned)
        total_liquidity -= payout
        account.deposit_principal -= withdraw_amount
        burn shares_burned from account
        native transfer pool -> account of payout
        emit DepositWithdrawn

    Raises:
        InvalidWithdrawalParameters: if either argument <= 0
        InsufficientPrincipal: if withdraw_amount > deposit_principal
        InsufficientShares: if shares_burned > share balance
        ArithmeticUnderflow: if the payout exceeds total_liquidity
    """
    require_positive(withdraw_amount, InvalidWithdrawalParameters, "withdraw_amount")
    require_positive(shares_burned, InvalidWithdrawalParameters, "shares_burned")

    old_account = view.get_account(account)
    if withdraw_amount > old_account.deposit_principal:
        raise InsufficientPrincipal(
            f"{account}: withdrawal {withdraw_amount} exceeds deposit principal "
            f"{old_account.deposit_principal}"
        )
    share_balance = view.share_balance_of(account)
    if shares_burned > share_balance:
        raise InsufficientShares(
            f"{account}: burn of {shares_burned} shares exceeds balance {share_balance}"
        )

    old_totals = view.get_totals()
    redemption = calculate_redemption_value(
        shares_burned, view.share_supply(), old_totals.total_liquidity
    )
    payout = checked_add(withdraw_amount, redemption)

    new_account = replace(
        old_account,
        deposit_principal=checked_sub(old_account.deposit_principal, withdraw_amount),
    )
    new_totals = replace(
        old_totals,
        total_liquidity=checked_sub(old_totals.total_liquidity, payout),
    )

    return build_operation(
        view,
        "withdraw",
        account_changes=[AccountChange(account, old_account, new_account)],
        totals_change=TotalsChange(old_totals, new_totals),
        share_actions=[ShareAction(ShareActionKind.BURN, account, shares_burned)],
        transfers=[Transfer(AssetKind.NATIVE, TransferDirection.OUT, account, payout)],
        event=DepositWithdrawn(
            account, view.current_time, total_payout=payout, shares_burned=shares_burned
        ),
    )


def redeemable_value(view: LedgerView, account: AccountId) -> int:
    """Native value of the account's whole share balance at the current share price."""
    return calculate_redemption_value(
        view.share_balance_of(account), view.share_supply(), view.get_totals().total_liquidity
    )

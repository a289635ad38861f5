#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Pool Step by Step

A pedagogical walk through the lending pool. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Liquidity   - The empty pool, deposits and shares, withdrawals
  4-6:  Credit      - Collateral, borrowing limits, rejections and atomicity
  7-8:  Risk        - Interest over time, price crashes and liquidation

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing

Configuration is read from LENDPOOL_* environment variables, e.g.
    LENDPOOL_COLLATERALIZATION_RATIO=175 LENDPOOL_VERBOSE=true python demo.py --quick
"""

from dataclasses import replace
from datetime import datetime, timedelta
import sys

from lendpool import (
    LendingPool, PoolSettings, StaticPriceOracle, InMemoryShareToken, InMemoryAsset,
    AccountChange, TotalsChange, build_operation, configure_logging,
    LendingPoolError, NATIVE_UNIT,
)


ETH = NATIVE_UNIT
USDT = 10 ** 6
START = datetime(2025, 1, 1, 9, 0)

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def eth(amount: int) -> str:
    return f"{amount / ETH:,.6f} ETH"


def usdt(amount: int) -> str:
    return f"{amount / USDT:,.2f} USDT"


class WriteOff:
    """Minimal settlement handler: writes the position off, moving no assets."""

    def settle(self, view, account):
        old = view.get_account(account)
        new = replace(old, collateral_posted=0, debt_principal=0, accrued_interest=0,
                      debt_opened_at=None)
        totals = view.get_totals()
        new_totals = replace(
            totals,
            total_collateral=totals.total_collateral - old.collateral_posted,
            total_debt_principal=totals.total_debt_principal - old.debt_principal,
        )
        return build_operation(
            view, "write_off",
            account_changes=[AccountChange(account, old, new)],
            totals_change=TotalsChange(totals, new_totals),
        )


# ============================================================================
# PHASE 1: LIQUIDITY (Steps 1-3)
# ============================================================================

def step_01_empty_pool(settings: PoolSettings) -> LendingPool:
    step_header(1, "The Empty Pool",
        "A pool starts with no liquidity, no shares and no debt.")

    eth_asset = InMemoryAsset("ETH", 18)
    usdt_asset = InMemoryAsset("USDT", settings.stable_decimals)
    for holder in ("alice", "bob"):
        eth_asset.mint(holder, 100 * ETH)
    usdt_asset.fund_custody(1_000_000 * USDT)

    pool = LendingPool.from_settings(
        settings, StaticPriceOracle(2000), InMemoryShareToken(), eth_asset, usdt_asset,
        initial_time=START,
    )

    section_header("Initial State")
    print(f"Pool:            {pool!r}")
    print(f"Price:           {pool.latest_price()!r}")
    print(f"Risk:            {pool.risk}")
    print(f"Share supply:    {pool.share_supply()}")
    wait_for_enter()
    return pool


def step_02_deposit(pool: LendingPool):
    step_header(2, "Deposits and Shares",
        "The first depositor receives one share per whole native unit.")

    print('>>> pool.deposit("alice", 10 * ETH)')
    event = pool.deposit("alice", 10 * ETH)
    print(f"Event:            {event}")
    print(f"Alice shares:     {pool.share_balance_of('alice')}")
    print(f"Alice redeemable: {eth(pool.redeemable_value_of('alice'))}")
    print(f"Total liquidity:  {eth(pool.total_liquidity())}")
    wait_for_enter()


def step_03_withdraw(pool: LendingPool):
    step_header(3, "Withdrawals",
        "A withdrawal returns principal plus the value of the shares burned.")

    print('>>> pool.withdraw("alice", 3 * ETH, 2)')
    event = pool.withdraw("alice", 3 * ETH, 2)
    print(f"Payout:           {eth(event.total_payout)}")
    print(f"Alice principal:  {eth(pool.deposit_principal_of('alice'))}")
    print(f"Alice shares:     {pool.share_balance_of('alice')}")
    pool.deposit("alice", 20 * ETH)
    print(f"\nAfter a further 20 ETH deposit, liquidity is {eth(pool.total_liquidity())}")
    wait_for_enter()


# ============================================================================
# PHASE 2: CREDIT (Steps 4-6)
# ============================================================================

def step_04_collateral(pool: LendingPool):
    step_header(4, "Collateral and Borrowing Limits",
        "Posted collateral bounds how much of the stable asset can be borrowed.")

    pool.post_collateral("bob", 10 * ETH)
    limit = pool.borrow_limit_of("bob")
    print(f"Bob collateral:   {eth(pool.collateral_of('bob'))}")
    print(f"Bob borrow limit: {usdt(limit)}")
    print(f"Collateral for 10,000 USDT: {eth(pool.required_collateral_for(10_000 * USDT))}")
    wait_for_enter()


def step_05_borrow(pool: LendingPool):
    step_header(5, "Borrowing",
        "A loan pays out the stable asset and locks part of the collateral.")

    event = pool.borrow("bob", 10_000 * USDT)
    print(f"Event:               {event}")
    print(f"Bob USDT balance:    {usdt(pool.stable_asset.balance_of('bob'))}")
    print(f"Available collateral:{eth(pool.available_collateral_of('bob')):>20}")
    print(f"Utilization:         {pool.utilization_bps() / 100:.2f}%")
    print(f"Borrow rate:         {pool.borrow_rate_bps() / 100:.2f}%")
    wait_for_enter()


def step_06_rejection(pool: LendingPool):
    step_header(6, "Rejections Change Nothing",
        "An operation either applies completely or not at all.")

    before = (pool.get_totals(), len(pool.events))
    try:
        pool.withdraw_collateral("bob", 5 * ETH)
    except LendingPoolError as e:
        print(f"Rejected: {type(e).__name__}: {e}")
    print(f"State unchanged: {(pool.get_totals(), len(pool.events)) == before}")
    wait_for_enter()


# ============================================================================
# PHASE 3: RISK (Steps 7-8)
# ============================================================================

def step_07_interest(pool: LendingPool):
    step_header(7, "Interest Over Time",
        "Debt accrues simple interest at a utilization-driven rate.")

    for days in (30, 180, 365):
        pool.advance_time(START + timedelta(days=days))
        print(f"Day {days:>3}: owed {usdt(pool.debt_with_interest_of('bob'))}")
    wait_for_enter()


def step_08_liquidation(pool: LendingPool):
    step_header(8, "Price Crash and Liquidation",
        "Below the liquidation threshold a position can be settled by a handler.")

    pool.oracle.update_price(1100)
    print(f"Price:        {pool.latest_price()!r}")
    print(f"Liquidatable: {pool.liquidatable_accounts()}")
    pool.liquidate("bob", WriteOff())
    print(f"After settlement: {pool!r}")

    section_header("Invariants")
    result = pool.verify_invariants()
    print(f"Valid: {result['valid']}")
    print(f"Events recorded: {len(pool.events)}")


def main():
    settings = PoolSettings()
    configure_logging(settings)

    pool = step_01_empty_pool(settings)
    step_02_deposit(pool)
    step_03_withdraw(pool)
    step_04_collateral(pool)
    step_05_borrow(pool)
    step_06_rejection(pool)
    step_07_interest(pool)
    step_08_liquidation(pool)


if __name__ == "__main__":
    main()

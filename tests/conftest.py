"""
conftest.py - Shared pytest fixtures for lending pool tests

Provides common fixtures used across unit, functional and conformance tests:
- Collaborators (oracle, share token, native and stable assets)
- Pools (empty, funded, with an open loan)
- Fake views for the pure engines
"""

import pytest

from lendpool import AccountState, PoolTotals, PriceQuote

from tests.fakes import (
    FakeView, FailingAsset, FailingShareToken, ETH, USDT, START, make_pool,
)


# =============================================================================
# POOL FIXTURES
# =============================================================================

@pytest.fixture
def pool():
    """Empty pool at price 2000 with funded alice, bob and carol."""
    return make_pool()


@pytest.fixture
def oracle(pool):
    return pool.oracle


@pytest.fixture
def liquid_pool(pool):
    """Pool where alice has deposited 10 ETH."""
    pool.deposit("alice", 10 * ETH)
    return pool


@pytest.fixture
def borrowed_pool(liquid_pool):
    """Liquid pool where bob posted 10 ETH and borrowed 10,000 USDT."""
    liquid_pool.post_collateral("bob", 10 * ETH)
    liquid_pool.borrow("bob", 10_000 * USDT)
    return liquid_pool


@pytest.fixture
def failing_pool():
    """Pool whose native asset, stable asset and share token can be made to fail."""
    return make_pool(
        native=FailingAsset("ETH", 18),
        stable=FailingAsset("USDT", 6),
        share_token=FailingShareToken(),
    )


# =============================================================================
# FAKE VIEW FIXTURES
# =============================================================================

@pytest.fixture
def empty_view():
    return FakeView(time=START)


@pytest.fixture
def depositor_view():
    """FakeView where alice holds 10 ETH of principal and 10 shares."""
    return FakeView(
        accounts={"alice": AccountState(deposit_principal=10 * ETH)},
        totals=PoolTotals(total_liquidity=10 * ETH),
        shares={"alice": 10},
        time=START,
    )


@pytest.fixture
def borrower_view():
    """FakeView where bob has 10 ETH posted and 10,000 USDT borrowed."""
    return FakeView(
        accounts={"bob": AccountState(
            collateral_posted=10 * ETH,
            debt_principal=10_000 * USDT,
            debt_opened_at=START,
        )},
        totals=PoolTotals(
            total_liquidity=10 * ETH,
            total_collateral=10 * ETH,
            total_debt_principal=10_000 * USDT,
        ),
        price=PriceQuote.from_whole(2000),
        time=START,
    )

"""
lendpool - Collateralized Lending Pool Accounting Engine

Liquidity providers deposit the native asset and receive pool shares;
borrowers post native collateral and borrow a stable asset against it.

Usage:
    from lendpool import (
        LendingPool, StaticPriceOracle, InMemoryShareToken, InMemoryAsset,
        NATIVE_UNIT,
    )

    eth = InMemoryAsset("ETH", decimals=18)
    usdt = InMemoryAsset("USDT", decimals=6)
    eth.mint("alice", 100 * NATIVE_UNIT)
    eth.mint("bob", 100 * NATIVE_UNIT)
    usdt.fund_custody(1_000_000 * 10**6)

    pool = LendingPool(StaticPriceOracle(2000), InMemoryShareToken(), eth, usdt)

    pool.deposit("alice", 10 * NATIVE_UNIT)          # mints 10 shares
    pool.post_collateral("bob", 10 * NATIVE_UNIT)
    pool.borrow("bob", 10_000 * 10**6)               # needs 7.5 ETH at 150%
    pool.available_collateral_of("bob")              # 2.5 ETH
"""

# Core types
from .core import (
    LedgerView,
    ShareToken,
    AssetLedger,
    AccountId,
    AccountState,
    PoolTotals,
    AccountChange,
    TotalsChange,
    ShareAction,
    ShareActionKind,
    Transfer,
    AssetKind,
    TransferDirection,
    PendingOperation,
    build_operation,
    checked_add,
    checked_sub,
    checked_mul,
    mul_div, mul_div_up,
    NATIVE_DECIMALS,
    NATIVE_UNIT,
    DEFAULT_STABLE_DECIMALS,
    MAX_AMOUNT,
    PERCENT,
    BPS,
    SECONDS_PER_YEAR,
    LendingPoolError,
    ZeroAmount,
    InvalidWithdrawalParameters,
    InsufficientPrincipal,
    InsufficientShares,
    InsufficientCollateral,
    ExceedsAvailableCollateral,
    ArithmeticOverflow,
    ArithmeticUnderflow,
    TransferFailed,
    InvalidPrice,
    StaleOperation,
    InvalidRiskParameters,
    PositionNotLiquidatable,
)

# Pool
from .pool import LendingPool

# Oracle
from .oracle import (
    PriceQuote,
    PriceOracle,
    StaticPriceOracle,
    DEFAULT_PRICE_DECIMALS,
    convert_stable_to_native,
    convert_native_to_stable,
)

# Risk configuration
from .risk import RiskParameters

# Token collaborators
from .tokens import InMemoryShareToken, InMemoryAsset

# Ledger state
from .state import LedgerState, StateSnapshot

# Events
from .events import (
    PoolEvent,
    Deposited,
    DepositWithdrawn,
    CollateralDeposited,
    CollateralWithdrawn,
    LoanBorrowed,
    RecordedEvent,
    EventLog,
)

# Liquidity engine
from .liquidity import (
    calculate_shares_to_mint,
    calculate_redemption_value,
    compute_deposit,
    compute_withdrawal,
    redeemable_value,
)

# Credit engine
from .credit import (
    SettlementHandler,
    calculate_collateral_required,
    calculate_available_collateral,
    calculate_borrow_limit,
    calculate_utilization_bps,
    calculate_pending_interest,
    calculate_debt_with_interest,
    calculate_is_liquidatable,
    compute_collateral_deposit,
    compute_collateral_withdrawal,
    compute_borrow,
)

# Configuration and logging
from .settings import PoolSettings
from .log import configure_logging, setup_logger


__all__ = [
    # Core
    'LedgerView', 'ShareToken', 'AssetLedger', 'AccountId',
    'AccountState', 'PoolTotals', 'AccountChange', 'TotalsChange',
    'ShareAction', 'ShareActionKind', 'Transfer', 'AssetKind', 'TransferDirection',
    'PendingOperation', 'build_operation',
    'checked_add', 'checked_sub', 'checked_mul', 'mul_div', 'mul_div_up',
    'NATIVE_DECIMALS', 'NATIVE_UNIT', 'DEFAULT_STABLE_DECIMALS', 'MAX_AMOUNT',
    'PERCENT', 'BPS', 'SECONDS_PER_YEAR',
    # Errors
    'LendingPoolError', 'ZeroAmount', 'InvalidWithdrawalParameters',
    'InsufficientPrincipal', 'InsufficientShares', 'InsufficientCollateral',
    'ExceedsAvailableCollateral', 'ArithmeticOverflow', 'ArithmeticUnderflow',
    'TransferFailed', 'InvalidPrice', 'StaleOperation', 'InvalidRiskParameters',
    'PositionNotLiquidatable',
    # Pool
    'LendingPool',
    # Oracle
    'PriceQuote', 'PriceOracle', 'StaticPriceOracle', 'DEFAULT_PRICE_DECIMALS',
    'convert_stable_to_native', 'convert_native_to_stable',
    # Risk
    'RiskParameters',
    # Tokens
    'InMemoryShareToken', 'InMemoryAsset',
    # State
    'LedgerState', 'StateSnapshot',
    # Events
    'PoolEvent', 'Deposited', 'DepositWithdrawn', 'CollateralDeposited',
    'CollateralWithdrawn', 'LoanBorrowed', 'RecordedEvent', 'EventLog',
    # Liquidity
    'calculate_shares_to_mint', 'calculate_redemption_value',
    'compute_deposit', 'compute_withdrawal', 'redeemable_value',
    # Credit
    'SettlementHandler',
    'calculate_collateral_required', 'calculate_available_collateral',
    'calculate_borrow_limit', 'calculate_utilization_bps',
    'calculate_pending_interest', 'calculate_debt_with_interest',
    'calculate_is_liquidatable',
    'compute_collateral_deposit', 'compute_collateral_withdrawal', 'compute_borrow',
    # Configuration
    'PoolSettings', 'configure_logging', 'setup_logger',
]

__version__ = '1.0.0'

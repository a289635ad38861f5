"""
Core types and pure functions for the lending pool accounting engine.

This module provides the foundational data structures and protocols for the pool:
1. Protocols: LedgerView for read-only pool access, ShareToken and AssetLedger
   for the external token collaborators
2. Immutable data structures: AccountState, PoolTotals, AccountChange,
   ShareAction, Transfer, PendingOperation
3. Exceptions: LendingPoolError and one subclass per rejection reason
4. Checked integer arithmetic: every quantity is a non-negative integer
   bounded by MAX_AMOUNT; violations raise instead of wrapping

All functions in this module are pure and operate on read-only views.
No function can mutate pool state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import (
    Dict, List, Set, Optional, Any, Protocol,
    Tuple, runtime_checkable, TYPE_CHECKING
)

if TYPE_CHECKING:
    from .events import PoolEvent
    from .oracle import PriceQuote
    from .risk import RiskParameters


# ============================================================================
# CONSTANTS
# ============================================================================

# The native asset is counted in its smallest denomination (18 decimals).
# Share minting at bootstrap divides by NATIVE_UNIT, giving one share per
# whole native unit deposited.
NATIVE_DECIMALS = 18
NATIVE_UNIT = 10 ** NATIVE_DECIMALS

# Stable assets typically carry 6 decimals.
DEFAULT_STABLE_DECIMALS = 6

# Upper bound for every stored quantity and every intermediate product.
MAX_AMOUNT = 2 ** 256 - 1

# Ratios are expressed in percent, rates in basis points.
PERCENT = 100
BPS = 10_000

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Participant identity (an address, a user id, a wallet name).
AccountId = str


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingPoolError(Exception):
    """Base exception for all lending pool errors."""
    pass


class ZeroAmount(LendingPoolError):
    """Raised when an amount argument is zero or negative."""
    pass


class InvalidWithdrawalParameters(LendingPoolError):
    """Raised when either withdrawal argument is zero or negative."""
    pass


class InsufficientPrincipal(LendingPoolError):
    """Raised when a withdrawal exceeds the account's recorded deposit principal."""
    pass


class InsufficientShares(LendingPoolError):
    """Raised when a share burn exceeds the account's share balance."""
    pass


class InsufficientCollateral(LendingPoolError):
    """Raised when a borrow would breach the collateralization ratio."""
    pass


class ExceedsAvailableCollateral(LendingPoolError):
    """Raised when a collateral withdrawal would breach the ratio for existing debt."""
    pass


class ArithmeticOverflow(LendingPoolError):
    """Raised when a computation would exceed MAX_AMOUNT."""
    pass


class ArithmeticUnderflow(LendingPoolError):
    """Raised when a computation would produce a negative quantity."""
    pass


class TransferFailed(LendingPoolError):
    """Raised by an asset or share collaborator that cannot complete a transfer."""
    pass


class InvalidPrice(LendingPoolError):
    """Raised when the oracle returns a non-positive price."""
    pass


class StaleOperation(LendingPoolError):
    """Raised when a pending operation was built against state that has since changed."""
    pass


class InvalidRiskParameters(LendingPoolError):
    """Raised when risk parameters are inconsistent or out of range."""
    pass


class PositionNotLiquidatable(LendingPoolError):
    """Raised when liquidation is requested for a position that passes the predicate."""
    pass


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def _check_quantity(value: Any, name: str = "quantity") -> int:
    """Validate that value is an in-range, non-negative integer and return it."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ArithmeticUnderflow(f"{name} would be negative: {value}")
    if value > MAX_AMOUNT:
        raise ArithmeticOverflow(f"{name} exceeds MAX_AMOUNT: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add two quantities, raising ArithmeticOverflow past MAX_AMOUNT."""
    result = a + b
    if result > MAX_AMOUNT:
        raise ArithmeticOverflow(f"{a} + {b} exceeds MAX_AMOUNT")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract b from a, raising ArithmeticUnderflow if the result is negative."""
    if b > a:
        raise ArithmeticUnderflow(f"{a} - {b} would be negative")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > MAX_AMOUNT:
        raise ArithmeticOverflow(f"{a} * {b} exceeds MAX_AMOUNT")
    return result


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute floor(a * b / denominator) with overflow checking.

    The intermediate product is bounded by MAX_AMOUNT like every stored
    quantity.

    Raises:
        ZeroDivisionError: if denominator is zero
        ArithmeticOverflow: if a * b exceeds MAX_AMOUNT
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return checked_mul(a, b) // denominator


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """
    Compute ceil(a * b / denominator) with overflow checking.

    Used for amounts the pool requires from an account.
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div_up denominator is zero")
    return -(-checked_mul(a, b) // denominator)


def require_positive(amount: Any, error: type = ZeroAmount, name: str = "amount") -> int:
    """
    Validate an operation argument.

    Returns the amount unchanged if it is a positive int within range.

    Raises:
        TypeError: if amount is not an int
        error: (ZeroAmount by default) if amount <= 0
        ArithmeticOverflow: if amount exceeds MAX_AMOUNT
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"{name} must be int, got {type(amount).__name__}")
    if amount <= 0:
        raise error(f"{name} must be positive, got {amount}")
    if amount > MAX_AMOUNT:
        raise ArithmeticOverflow(f"{name} exceeds MAX_AMOUNT: {amount}")
    return amount


# ============================================================================
# ENUMS
# ============================================================================

class ShareActionKind(Enum):
    MINT = "mint"
    BURN = "burn"


class AssetKind(Enum):
    """Which asset a transfer moves."""
    NATIVE = "native"   # Deposits, payouts, collateral
    STABLE = "stable"   # Loans and repayments


class TransferDirection(Enum):
    IN = "in"     # account -> pool
    OUT = "out"   # pool -> account


# ============================================================================
# LEDGER STATE RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountState:
    """
    Immutable snapshot of one participant's position in the pool.

    Attributes:
        deposit_principal: Native units contributed and not yet withdrawn as principal.
        collateral_posted: Native units pledged as borrowing collateral.
        debt_principal: Stable units borrowed and not yet repaid.
        accrued_interest: Stable-unit interest crystallised at the last debt change.
        debt_opened_at: Time of the most recent debt change (None before any borrow).

    Every quantity is validated in __post_init__: a negative value raises
    ArithmeticUnderflow, a value past MAX_AMOUNT raises ArithmeticOverflow.
    """
    deposit_principal: int = 0
    collateral_posted: int = 0
    debt_principal: int = 0
    accrued_interest: int = 0
    debt_opened_at: Optional[datetime] = None

    def __post_init__(self):
        _check_quantity(self.deposit_principal, "deposit_principal")
        _check_quantity(self.collateral_posted, "collateral_posted")
        _check_quantity(self.debt_principal, "debt_principal")
        _check_quantity(self.accrued_interest, "accrued_interest")

    def is_empty(self) -> bool:
        """True if the account holds no principal, collateral or debt."""
        return not (
            self.deposit_principal or self.collateral_posted
            or self.debt_principal or self.accrued_interest
        )

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class PoolTotals:
    """
    Immutable snapshot of the pool-wide aggregates.

    Share supply is not stored here: the ShareToken owns it and the engine
    reads it from there whenever it needs the share-price denominator.
    """
    total_liquidity: int = 0
    total_collateral: int = 0
    total_debt_principal: int = 0

    def __post_init__(self):
        _check_quantity(self.total_liquidity, "total_liquidity")
        _check_quantity(self.total_collateral, "total_collateral")
        _check_quantity(self.total_debt_principal, "total_debt_principal")

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class AccountChange:
    """
    Record of an account state change for execution and rollback.

    Stores complete before/after snapshots. The executor compares ``old``
    with the live state before applying ``new`` and rejects the operation
    if they differ.
    """
    account: AccountId
    old: AccountState
    new: AccountState

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new state.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
        """
        old = self.old.as_dict()
        new = self.new.as_dict()
        return {k: (old[k], new[k]) for k in old if old[k] != new[k]}


@dataclass(frozen=True, slots=True)
class TotalsChange:
    """Before/after snapshot of the pool aggregates."""
    old: PoolTotals
    new: PoolTotals

    def changed_fields(self) -> Dict[str, Tuple[int, int]]:
        old = self.old.as_dict()
        new = self.new.as_dict()
        return {k: (old[k], new[k]) for k in old if old[k] != new[k]}


# ============================================================================
# EXTERNAL EFFECTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class ShareAction:
    """A mint or burn of pool shares for one account."""
    kind: ShareActionKind
    account: AccountId
    amount: int

    def __post_init__(self):
        if not self.account or not self.account.strip():
            raise ValueError("ShareAction account cannot be empty")
        _check_quantity(self.amount, "share amount")
        if self.amount == 0:
            raise ValueError("ShareAction amount cannot be zero")

    def inverse(self) -> 'ShareAction':
        """The action that undoes this one (mint <-> burn)."""
        kind = ShareActionKind.BURN if self.kind is ShareActionKind.MINT else ShareActionKind.MINT
        return ShareAction(kind, self.account, self.amount)

    def __repr__(self) -> str:
        return f"ShareAction({self.kind.value} {self.amount} -> {self.account})"


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single asset transfer between an account and the pool's custody.

    Attributes:
        asset: NATIVE or STABLE.
        direction: IN (account pays the pool) or OUT (pool pays the account).
        account: Counterparty of the pool.
        amount: Quantity in the asset's smallest denomination (must be positive).
    """
    asset: AssetKind
    direction: TransferDirection
    account: AccountId
    amount: int

    def __post_init__(self):
        if not self.account or not self.account.strip():
            raise ValueError("Transfer account cannot be empty")
        _check_quantity(self.amount, "transfer amount")
        if self.amount == 0:
            raise ValueError("Transfer amount cannot be zero")

    def inverse(self) -> 'Transfer':
        """The transfer that undoes this one (in <-> out)."""
        direction = (
            TransferDirection.OUT if self.direction is TransferDirection.IN
            else TransferDirection.IN
        )
        return Transfer(self.asset, direction, self.account, self.amount)

    def __repr__(self) -> str:
        arrow = "->pool" if self.direction is TransferDirection.IN else "pool->"
        return f"Transfer({self.amount} {self.asset.value}: {arrow} {self.account})"


# ============================================================================
# PENDING OPERATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    A fully validated, not-yet-applied pool operation - represents INTENT.

    Created by the compute_* functions of the liquidity and credit engines
    and submitted to LendingPool.execute(). Holds everything needed to apply
    the operation all-or-nothing: ledger changes first, then share mints and
    burns, then asset transfers, then the event.

    Attributes:
        name: Operation name (deposit, withdraw, borrow, ...)
        account_changes: Account snapshots before and after
        totals_change: Pool aggregates before and after (None if unchanged)
        share_actions: Mints/burns to perform on the ShareToken
        transfers: Asset transfers, performed last
        event: Domain event to append once the operation has been applied
        timestamp: Pool time at which the operation was computed
    """
    name: str
    account_changes: Tuple[AccountChange, ...]
    totals_change: Optional[TotalsChange]
    share_actions: Tuple[ShareAction, ...]
    transfers: Tuple[Transfer, ...]
    event: Optional['PoolEvent']
    timestamp: datetime

    def is_empty(self) -> bool:
        return (
            not self.account_changes and self.totals_change is None
            and not self.share_actions and not self.transfers
        )

    def __repr__(self) -> str:
        return (
            f"PendingOperation({self.name}: {len(self.account_changes)} accounts, "
            f"{len(self.share_actions)} share actions, {len(self.transfers)} transfers)"
        )

    def describe(self) -> str:
        """Render a boxed multi-line summary, used for verbose logging."""
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            f"┌{bar}┐",
            f"│{pad(' Operation: ' + self.name)}│",
            f"│{pad('   timestamp : ' + str(self.timestamp))}│",
            f"│{pad('   event     : ' + repr(self.event))}│",
        ]
        for change in self.account_changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' [' + change.account + ']')}│")
            for field_name, (old_val, new_val) in change.changed_fields().items():
                lines.append(f"│{pad(f'   {field_name}: {old_val!r} → {new_val!r}')}│")
        if self.totals_change is not None:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' [pool]')}│")
            for field_name, (old_val, new_val) in self.totals_change.changed_fields().items():
                lines.append(f"│{pad(f'   {field_name}: {old_val} → {new_val}')}│")
        if self.share_actions or self.transfers:
            lines.append(f"├{bar}┤")
            for action in self.share_actions:
                lines.append(f"│{pad('   ' + repr(action))}│")
            for transfer in self.transfers:
                lines.append(f"│{pad('   ' + repr(transfer))}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


def build_operation(
    view: 'LedgerView',
    name: str,
    account_changes: Optional[List[AccountChange]] = None,
    totals_change: Optional[TotalsChange] = None,
    share_actions: Optional[List[ShareAction]] = None,
    transfers: Optional[List[Transfer]] = None,
    event: Optional['PoolEvent'] = None,
) -> PendingOperation:
    """
    Build a PendingOperation stamped with the view's current time.

    This is the standard way for the engines to create operations.

    Example:
        def compute_post(view, account, amount):
            old = view.get_account(account)
            new = replace(old, collateral_posted=checked_add(old.collateral_posted, amount))
            return build_operation(view, "post_collateral",
                                   account_changes=[AccountChange(account, old, new)])
    """
    return PendingOperation(
        name=name,
        account_changes=tuple(account_changes or ()),
        totals_change=totals_change,
        share_actions=tuple(share_actions or ()),
        transfers=tuple(transfers or ()),
        event=event,
        timestamp=view.current_time,
    )


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class ShareToken(Protocol):
    """
    Mintable/burnable fungible token representing proportional pool ownership.

    The engine only mints and burns; transfers and approvals between holders
    are the token's own business. All quantities are exact integers.
    """

    def mint(self, account: AccountId, amount: int) -> None:
        ...

    def burn(self, account: AccountId, amount: int) -> None:
        ...

    def balance_of(self, account: AccountId) -> int:
        ...

    def total_supply(self) -> int:
        ...


@runtime_checkable
class AssetLedger(Protocol):
    """
    Transfer primitive for an asset held in the pool's custody.

    Used for both the native asset (deposits, payouts, collateral) and the
    stable asset (loans). Implementations raise TransferFailed when a transfer
    cannot be completed; the pool then rolls the whole operation back.
    """
    decimals: int

    def transfer_in(self, account: AccountId, amount: int) -> None:
        """Move amount from account into the pool's custody."""
        ...

    def transfer_out(self, account: AccountId, amount: int) -> None:
        """Move amount from the pool's custody to account."""
        ...

    def balance_of(self, account: AccountId) -> int:
        ...


@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to pool state.

    This protocol defines the interface that the compute_* functions use to
    query the pool without the ability to modify it. Functions accepting a
    LedgerView parameter declare their read-only intent.

    LendingPool implements this protocol but also provides mutation methods.
    For testing, tests/fakes.py provides a FakeView with fixed state.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the pool."""
        ...

    @property
    def risk(self) -> 'RiskParameters':
        ...

    @property
    def stable_decimals(self) -> int:
        ...

    def get_account(self, account: AccountId) -> AccountState:
        """Return the account's state (an empty AccountState if never seen)."""
        ...

    def get_totals(self) -> PoolTotals:
        ...

    def share_balance_of(self, account: AccountId) -> int:
        ...

    def share_supply(self) -> int:
        ...

    def latest_price(self) -> 'PriceQuote':
        """Return a fresh oracle quote."""
        ...

    def list_accounts(self) -> Set[AccountId]:
        ...

"""
test_core_types.py - Unit tests for core data types and checked arithmetic

Tests:
- Checked add/sub/mul and mul_div / mul_div_up bounds
- require_positive argument validation
- AccountState / PoolTotals validation and immutability
- AccountChange / TotalsChange changed_fields
- ShareAction / Transfer validation and inverses
- PendingOperation construction and rendering
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime

from lendpool import (
    AccountState, PoolTotals, AccountChange, TotalsChange,
    ShareAction, ShareActionKind, Transfer, AssetKind, TransferDirection,
    PendingOperation, build_operation,
    checked_add, checked_sub, checked_mul, mul_div, mul_div_up,
    MAX_AMOUNT, NATIVE_UNIT,
    ZeroAmount, InvalidWithdrawalParameters, ArithmeticOverflow, ArithmeticUnderflow,
)
from lendpool.core import require_positive
from tests.fakes import FakeView


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

class TestCheckedArithmetic:

    def test_add_within_bounds(self):
        assert checked_add(2, 3) == 5
        assert checked_add(MAX_AMOUNT - 1, 1) == MAX_AMOUNT

    def test_add_overflow_raises(self):
        with pytest.raises(ArithmeticOverflow):
            checked_add(MAX_AMOUNT, 1)

    def test_sub_to_zero(self):
        assert checked_sub(5, 5) == 0

    def test_sub_underflow_raises(self):
        with pytest.raises(ArithmeticUnderflow):
            checked_sub(4, 5)

    def test_mul_overflow_raises(self):
        with pytest.raises(ArithmeticOverflow):
            checked_mul(2 ** 200, 2 ** 60)

    def test_mul_div_floors(self):
        assert mul_div(10, 10, 3) == 33
        assert mul_div(7, 1, 2) == 3

    def test_mul_div_zero_denominator_raises(self):
        with pytest.raises(ZeroDivisionError):
            mul_div(1, 1, 0)

    def test_mul_div_intermediate_overflow_raises(self):
        """The product is bounded even if the quotient would fit."""
        with pytest.raises(ArithmeticOverflow):
            mul_div(MAX_AMOUNT, 2, 2)

    def test_mul_div_up_rounds_up(self):
        assert mul_div_up(10, 10, 3) == 34
        assert mul_div_up(7, 1, 2) == 4
        assert mul_div_up(6, 1, 2) == 3
        assert mul_div_up(0, 5, 3) == 0

    def test_mul_div_up_bounds(self):
        with pytest.raises(ZeroDivisionError):
            mul_div_up(1, 1, 0)
        with pytest.raises(ArithmeticOverflow):
            mul_div_up(MAX_AMOUNT, 2, 2)


class TestRequirePositive:

    def test_positive_passes_through(self):
        assert require_positive(7) == 7

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_raises_default_error(self, amount):
        with pytest.raises(ZeroAmount):
            require_positive(amount)

    def test_custom_error(self):
        with pytest.raises(InvalidWithdrawalParameters):
            require_positive(0, InvalidWithdrawalParameters, "withdraw_amount")

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            require_positive(1.5)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            require_positive(True)

    def test_above_max_raises_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            require_positive(MAX_AMOUNT + 1)


# ============================================================================
# LEDGER RECORDS
# ============================================================================

class TestAccountState:

    def test_defaults_are_empty(self):
        state = AccountState()
        assert state.is_empty()
        assert state.debt_opened_at is None

    def test_negative_quantity_raises(self):
        with pytest.raises(ArithmeticUnderflow):
            AccountState(deposit_principal=-1)

    def test_quantity_above_max_raises(self):
        with pytest.raises(ArithmeticOverflow):
            AccountState(collateral_posted=MAX_AMOUNT + 1)

    def test_non_int_quantity_raises(self):
        with pytest.raises(TypeError):
            AccountState(debt_principal=1.0)

    def test_is_frozen(self):
        state = AccountState(deposit_principal=1)
        with pytest.raises(FrozenInstanceError):
            state.deposit_principal = 2

    def test_not_empty_with_interest_only(self):
        assert not AccountState(accrued_interest=1).is_empty()

    def test_as_dict(self):
        d = AccountState(collateral_posted=5).as_dict()
        assert d["collateral_posted"] == 5
        assert set(d) == {
            "deposit_principal", "collateral_posted", "debt_principal",
            "accrued_interest", "debt_opened_at",
        }


class TestPoolTotals:

    def test_defaults_zero(self):
        totals = PoolTotals()
        assert totals.as_dict() == {
            "total_liquidity": 0, "total_collateral": 0, "total_debt_principal": 0,
        }

    def test_negative_raises(self):
        with pytest.raises(ArithmeticUnderflow):
            PoolTotals(total_liquidity=-5)


class TestChanges:

    def test_account_change_fields(self):
        change = AccountChange(
            "alice",
            AccountState(deposit_principal=1),
            AccountState(deposit_principal=3, collateral_posted=0),
        )
        assert change.changed_fields() == {"deposit_principal": (1, 3)}

    def test_totals_change_fields(self):
        change = TotalsChange(PoolTotals(total_liquidity=1), PoolTotals(total_liquidity=1, total_collateral=2))
        assert change.changed_fields() == {"total_collateral": (0, 2)}


# ============================================================================
# EXTERNAL EFFECTS
# ============================================================================

class TestShareAction:

    def test_inverse_of_mint_is_burn(self):
        mint = ShareAction(ShareActionKind.MINT, "alice", 10)
        assert mint.inverse() == ShareAction(ShareActionKind.BURN, "alice", 10)
        assert mint.inverse().inverse() == mint

    def test_zero_amount_rejected(self):
        with pytest.raises(ValueError):
            ShareAction(ShareActionKind.MINT, "alice", 0)

    def test_empty_account_rejected(self):
        with pytest.raises(ValueError):
            ShareAction(ShareActionKind.BURN, "  ", 1)

    def test_repr(self):
        assert "mint 10" in repr(ShareAction(ShareActionKind.MINT, "alice", 10))


class TestTransfer:

    def test_inverse_flips_direction(self):
        t = Transfer(AssetKind.NATIVE, TransferDirection.IN, "bob", NATIVE_UNIT)
        inv = t.inverse()
        assert inv.direction is TransferDirection.OUT
        assert (inv.asset, inv.account, inv.amount) == (t.asset, t.account, t.amount)

    def test_zero_amount_rejected(self):
        with pytest.raises(ValueError):
            Transfer(AssetKind.STABLE, TransferDirection.OUT, "bob", 0)


# ============================================================================
# PENDING OPERATIONS
# ============================================================================

class TestPendingOperation:

    def test_build_operation_stamps_view_time(self):
        t = datetime(2025, 3, 1, 12, 0)
        view = FakeView(time=t)
        op = build_operation(view, "noop")
        assert op.timestamp == t
        assert op.is_empty()
        assert op.account_changes == ()
        assert op.event is None

    def test_lists_become_tuples(self):
        view = FakeView()
        change = AccountChange("alice", AccountState(), AccountState(deposit_principal=1))
        op = build_operation(view, "deposit", account_changes=[change])
        assert isinstance(op.account_changes, tuple)
        assert not op.is_empty()

    def test_describe_renders_changes(self):
        view = FakeView()
        op = build_operation(
            view, "post_collateral",
            account_changes=[AccountChange("bob", AccountState(), AccountState(collateral_posted=5))],
            totals_change=TotalsChange(PoolTotals(), PoolTotals(total_collateral=5)),
            transfers=[Transfer(AssetKind.NATIVE, TransferDirection.IN, "bob", 5)],
        )
        text = op.describe()
        assert "post_collateral" in text
        assert "[bob]" in text
        assert "collateral_posted: 0 → 5" in text
        assert "total_collateral: 0 → 5" in text
        assert text.startswith("┌") and text.endswith("┘")

    def test_is_frozen(self):
        op = build_operation(FakeView(), "noop")
        assert isinstance(op, PendingOperation)
        with pytest.raises(FrozenInstanceError):
            op.name = "other"

"""
Unit tests for money helpers.

Verifies:
- Rounding to centavos with ROUND_HALF_UP
- to_money coercion and float prohibition
"""

from decimal import ROUND_DOWN, Decimal

import pytest

from ledger_kernel.db.types import MONEY_DECIMAL_PLACES, round_money, to_money
from ledger_kernel.exceptions import InvalidAmountError, InvalidInputError


class TestRoundMoney:
    """Tests for round_money."""

    def test_default_places(self):
        assert MONEY_DECIMAL_PLACES == 2
        assert round_money(Decimal("10")) == Decimal("10.00")

    def test_half_up(self):
        """0.005 rounds away from zero."""
        assert round_money(Decimal("1.005")) == Decimal("1.01")
        assert round_money(Decimal("2.675")) == Decimal("2.68")

    def test_below_half_rounds_down(self):
        assert round_money(Decimal("1.004")) == Decimal("1.00")

    def test_custom_rounding(self):
        assert round_money(Decimal("1.009"), rounding=ROUND_DOWN) == Decimal("1.00")

    def test_custom_places(self):
        assert round_money(Decimal("1.23456"), decimal_places=4) == Decimal("1.2346")


class TestToMoney:
    """Tests for to_money."""

    def test_none_is_zero(self):
        assert to_money(None) == Decimal("0.00")

    def test_int(self):
        assert to_money(1500) == Decimal("1500.00")

    def test_string(self):
        assert to_money("1234.565") == Decimal("1234.57")

    def test_decimal(self):
        assert to_money(Decimal("99.999")) == Decimal("100.00")

    def test_float_rejected(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            to_money(0.1, "bonuses")
        assert exc_info.value.field == "bonuses"

    def test_garbage_rejected(self):
        with pytest.raises(InvalidAmountError, match="not a number"):
            to_money("twelve")

    def test_invalid_amount_is_invalid_input(self):
        with pytest.raises(InvalidInputError):
            to_money("x")

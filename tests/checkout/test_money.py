"""Tests for Money - exact 2-decimal amounts."""

from decimal import Decimal

import pytest
from pydantic import BaseModel, ValidationError

from checkout.money import Money, MoneyValue


class TestConstruction:
    """Every construction path rounds half-up to 2 places."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.345", "12.35"),
        ("10.124", "10.12"),
        ("0.005", "0.01"),
        ("-0.005", "-0.01"),
        (12.345, "12.35"),
        (7, "7.00"),
    ])
    def test_rounds_half_up(self, raw, expected):
        assert Money.of(raw).as_decimal() == Decimal(expected)

    def test_float_goes_through_string_form(self):
        """2.675 as a binary float is 2.67499..., but money sees 2.675."""
        assert Money.of(2.675) == Money.of("2.68")

    def test_negative_zero_normalized(self):
        assert str(Money.of("-0.001")) == "0.00"

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            Money.of(True)

    def test_of_returns_same_money(self):
        m = Money.of("1.00")
        assert Money.of(m) is m

    @pytest.mark.parametrize("raw", ["NaN", "sNaN", "Infinity", "-Infinity", Decimal("NaN"), float("inf")])
    def test_non_finite_rejected(self, raw):
        with pytest.raises(ValueError, match="finite"):
            Money.of(raw)


class TestEquality:
    """Equal by numeric value, regardless of construction path."""

    def test_equal_across_inputs(self):
        assert Money.of("5") == Money.of("5.00") == Money.of(Decimal("5.0")) == Money.of(5.0)

    def test_hash_by_value(self):
        assert len({Money.of("1.10"), Money.of(1.1), Money.of("1.1")}) == 1

    def test_ordering(self):
        assert Money.of("1.99") < Money.of("2.00")
        assert max(Money.of("3"), Money.of("10"), Money.of("7")) == Money.of("10")


class TestArithmetic:

    def test_add_and_subtract(self):
        assert Money.of("10.10") + Money.of("0.95") == Money.of("11.05")
        assert Money.of("1.00") - Money.of("2.50") == Money.of("-1.50")

    def test_multiply_by_int_decimal_and_float(self):
        assert Money.of("2.50") * 4 == Money.of("10.00")
        assert Money.of("10.00") * Decimal("0.125") == Money.of("1.25")
        assert 3 * Money.of("1.11") == Money.of("3.33")
        assert Money.of("10.00") * 0.333 == Money.of("3.33")

    def test_divide_rounds(self):
        assert Money.of("10.00") / 3 == Money.of("3.33")
        assert Money.of("0.05") / 2 == Money.of("0.03")

    def test_divide_by_zero(self):
        with pytest.raises(ZeroDivisionError):
            Money.of("10.00") / 0

    def test_adding_non_money_is_type_error(self):
        with pytest.raises(TypeError):
            Money.of("1.00") + 1

    def test_negate_and_predicates(self):
        m = -Money.of("4.20")
        assert m.is_negative()
        assert not Money.ZERO.is_negative()
        assert Money.ZERO.is_zero()

    def test_str_is_plain_two_decimals(self):
        assert str(Money.of("1234.5")) == "1234.50"


class TestPydanticField:
    """MoneyValue accepts the same inputs as Money.of."""

    class Priced(BaseModel):
        price: MoneyValue

    def test_accepts_string(self):
        assert self.Priced(price="9.999").price == Money.of("10.00")

    def test_accepts_money(self):
        m = Money.of("1.00")
        assert self.Priced(price=m).price == m

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError):
            self.Priced(price="not money")

    def test_rejects_nan(self):
        with pytest.raises(ValidationError):
            self.Priced(price="NaN")

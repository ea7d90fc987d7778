"""
Exact monetary amounts.

Every Money is a Decimal quantized to 2 places with ROUND_HALF_UP, on
construction and after every arithmetic step. Floats are accepted at the
boundary but converted through their string form, so 12.345 becomes 12.35
and never 12.34 through binary representation error.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, ClassVar

from pydantic import BeforeValidator

_CENT = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Money amount cannot be a bool")
    if isinstance(value, (int, str)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(f"Cannot convert {type(value).__name__} to Money")


@dataclass(frozen=True, order=True)
class Money:
    """Immutable 2-decimal money value. Equal and ordered by numeric value."""

    amount: Decimal

    ZERO: ClassVar["Money"]

    def __post_init__(self):
        value = _to_decimal(self.amount)
        if not value.is_finite():
            raise ValueError(f"Money amount must be finite, got {value}")
        quantized = value.quantize(_CENT, rounding=ROUND_HALF_UP)
        if quantized.is_zero():
            quantized = quantized.copy_abs()  # no "-0.00"
        object.__setattr__(self, "amount", quantized)

    @classmethod
    def of(cls, value) -> "Money":
        """Build Money from a Decimal, int, str or float."""
        if isinstance(value, Money):
            return value
        return cls(value)

    def as_decimal(self) -> Decimal:
        return self.amount

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount)

    def __mul__(self, factor) -> "Money":
        if isinstance(factor, Money):
            return NotImplemented
        return Money(self.amount * _to_decimal(factor))

    __rmul__ = __mul__

    def __truediv__(self, divisor: int) -> "Money":
        if isinstance(divisor, bool) or not isinstance(divisor, int):
            return NotImplemented
        if divisor == 0:
            raise ZeroDivisionError("Cannot divide money by zero")
        return Money(self.amount / Decimal(divisor))

    def __neg__(self) -> "Money":
        return Money(-self.amount)

    def is_negative(self) -> bool:
        return self.amount < 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


Money.ZERO = Money(Decimal("0"))


def coerce_money(value):
    """Pydantic before-validator: accept Money, Decimal, int, str or float."""
    if isinstance(value, (Money, dict)):
        return value
    try:
        return Money.of(value)
    except (TypeError, ArithmeticError) as e:
        raise ValueError(f"Invalid money amount: {value!r}") from e


MoneyValue = Annotated[Money, BeforeValidator(coerce_money)]

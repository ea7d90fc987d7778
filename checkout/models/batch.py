"""Batch, reservation and batch-discount models.

A Batch is one dated lot of an item, split across three stock pools:
the sales-floor shelf, the back-store, and the main warehouse.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from checkout.money import Money
from utils.timezone import now_utc


class StockPool(str, Enum):
    """Where a quantity of stock physically sits."""

    SHELF = "shelf"
    STORE = "store"
    MAIN = "main"


_POOL_FIELDS = {
    StockPool.SHELF: "qty_on_shelf",
    StockPool.STORE: "qty_in_store",
    StockPool.MAIN: "qty_in_main",
}


class Batch(BaseModel):
    """
    A dated lot of an item's stock.

    Quantities are only changed through take()/put(), which refuse to
    drive any pool negative.
    """

    id: int
    item_code: str
    expiry_date: date | None = None  # None = never expires
    qty_on_shelf: int = Field(0, ge=0)
    qty_in_store: int = Field(0, ge=0)
    qty_in_main: int = Field(0, ge=0)

    model_config = {"from_attributes": True}

    def quantity_in(self, pool: StockPool) -> int:
        return getattr(self, _POOL_FIELDS[pool])

    def take(self, pool: StockPool, quantity: int) -> None:
        """Remove quantity from a pool. Raises ValueError if it would go negative."""
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        current = self.quantity_in(pool)
        if quantity > current:
            raise ValueError(
                f"Batch {self.id} has {current} in {pool.value}, cannot take {quantity}"
            )
        setattr(self, _POOL_FIELDS[pool], current - quantity)

    def put(self, pool: StockPool, quantity: int) -> None:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        setattr(self, _POOL_FIELDS[pool], self.quantity_in(pool) + quantity)


class Reservation(BaseModel):
    """
    A provisional claim on part of a batch's pool quantity.

    Lives only on a bill line until the bill is committed; never persisted
    on its own.
    """

    batch_id: int
    item_code: str
    quantity: int = Field(..., gt=0)
    pool: StockPool

    model_config = {"frozen": True}


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"  # value is 0-100
    FIXED_AMOUNT = "fixed_amount"  # value is a money amount


class BatchDiscount(BaseModel):
    """
    A time-bounded markdown on one batch (close expiry, overstock, ...).

    An inactive or out-of-window discount is not an error; it simply
    leaves the price unchanged.
    """

    id: int
    batch_id: int
    discount_type: DiscountType
    value: Decimal
    reason: str | None = None
    valid_from: datetime
    valid_until: datetime | None = None  # None = open-ended
    created_by: str | None = None
    created_at: datetime = Field(default_factory=now_utc)
    is_active: bool = True

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_value_range(self) -> "BatchDiscount":
        """Value must be positive, and a percentage cannot exceed 100."""
        if self.value <= 0:
            raise ValueError("Discount value must be positive")
        if self.discount_type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100%")
        return self

    def is_valid_at(self, now: datetime) -> bool:
        if now < self.valid_from:
            return False
        return self.valid_until is None or now < self.valid_until

    def applies_at(self, now: datetime) -> bool:
        return self.is_active and self.is_valid_at(now)

    def calculate_discounted_price(self, original: Money, now: datetime | None = None) -> Money:
        """
        Price after this discount, or the original price if it does not apply.

        Fixed-amount discounts are not floored here; a markdown larger than
        the price yields a negative result.
        """
        if not self.applies_at(now or now_utc()):
            return original

        if self.discount_type == DiscountType.PERCENTAGE:
            return Money(original.amount * (1 - self.value / 100))
        return original - Money(self.value)

    def description(self) -> str:
        if self.discount_type == DiscountType.PERCENTAGE:
            if self.value == self.value.to_integral_value():
                return f"{int(self.value)}% off"
            return f"{self.value.quantize(Decimal('0.1'))}% off"
        return f"{Money(self.value)} off"

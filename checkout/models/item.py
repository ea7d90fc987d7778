"""Item domain model.

Items are read-only snapshots from the ledger. A rename or price change is a
new read, never a mutation of an Item already held by a bill.
"""

from pydantic import BaseModel, Field, field_validator

from checkout.money import Money, MoneyValue

DEFAULT_RESTOCK_LEVEL = 50


class Item(BaseModel):
    """A sellable product identified by its code."""

    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    unit_price: MoneyValue
    restock_level: int = Field(DEFAULT_RESTOCK_LEVEL, ge=0)

    model_config = {"frozen": True, "from_attributes": True}

    @field_validator("unit_price")
    @classmethod
    def price_not_negative(cls, value: Money) -> Money:
        if value.is_negative():
            raise ValueError("unit_price must be >= 0")
        return value

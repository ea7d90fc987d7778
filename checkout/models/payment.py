"""Payment request and receipt models.

A payment request is a tagged union on `method`: each variant carries
exactly the tender data its strategy needs.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from checkout.money import Money, MoneyValue


class CashTender(BaseModel):
    """Cash handed over by the customer."""

    method: Literal["CASH"] = "CASH"
    amount: MoneyValue


class CardTender(BaseModel):
    """
    Card payment. Only the last four digits are ever carried.

    amount defaults to the bill total; an explicit amount must match it.
    """

    method: Literal["CARD"] = "CARD"
    last4: str
    amount: MoneyValue | None = None


PaymentRequest = Annotated[Union[CashTender, CardTender], Field(discriminator="method")]


class PaymentReceipt(BaseModel):
    """Result of an accepted tender. Copied onto the bill once."""

    method: str
    paid: MoneyValue
    change: MoneyValue = Money.ZERO
    card_last4: str | None = None

    model_config = {"frozen": True}

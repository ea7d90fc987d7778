"""
Bill pricing: subtotal, discount, tax, total.

The four figures are computed together and written to the bill in a
single step. Running it again with the same lines, policy and tax rate
writes the same numbers.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from checkout.discounts import DiscountPolicy
from checkout.errors import InvalidInputError
from checkout.models import Bill
from checkout.money import Money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingBreakdown:
    """Result of pricing a bill."""

    subtotal: Money
    discount: Money
    tax: Money
    total: Money
    discount_code: str | None = None
    discount_notes: tuple[str, ...] = ()


class PricingEngine:
    """Prices bills at a flat tax percentage."""

    def __init__(self, tax_percent: Decimal | int | str = 0):
        tax_percent = Decimal(str(tax_percent))
        if tax_percent < 0:
            raise InvalidInputError(f"Tax percent must be >= 0, got {tax_percent}")
        self.tax_percent = tax_percent

    def preview(self, bill: Bill, policy: DiscountPolicy | None = None) -> PricingBreakdown:
        """Compute the breakdown without touching the bill."""
        subtotal = bill.compute_subtotal()

        discount = policy.compute_discount(bill) if policy is not None else Money.ZERO
        # Discount applied is kept within [0, subtotal] so a total never goes negative.
        if discount > subtotal:
            logger.info(
                "Discount %s from %s exceeds subtotal %s on bill %s, capping",
                discount, policy.code, subtotal, bill.number,
            )
            discount = subtotal
        if discount.is_negative():
            discount = Money.ZERO

        taxable = subtotal - discount
        if self.tax_percent == 0:
            tax = Money.ZERO
        else:
            tax = taxable * (self.tax_percent / 100)
        total = taxable + tax

        return PricingBreakdown(
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            total=total,
            discount_code=policy.code if policy is not None else None,
            discount_notes=tuple(policy.notes(bill)) if policy is not None and not discount.is_zero() else (),
        )

    def finalize(self, bill: Bill, policy: DiscountPolicy | None = None) -> PricingBreakdown:
        """Price the bill and write all totals onto it at once."""
        breakdown = self.preview(bill, policy)
        bill.set_pricing(
            breakdown.subtotal,
            breakdown.discount,
            breakdown.tax,
            breakdown.total,
            discount_code=breakdown.discount_code,
            discount_notes=breakdown.discount_notes,
        )
        return breakdown

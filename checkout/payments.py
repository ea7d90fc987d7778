"""
Payment strategies.

Each strategy validates its tender, prices the bill, checks the tender
against the final total and returns a receipt. Strategies never touch the
bill's lifecycle; the caller applies the receipt.
"""

import logging
import re
from abc import ABC, abstractmethod
from decimal import Decimal

from checkout.discounts import DiscountPolicy
from checkout.errors import (
    InsufficientPaymentError,
    InvalidInputError,
    PaymentMismatchError,
    UnsupportedPaymentMethodError,
)
from checkout.models import Bill, CardTender, CashTender, PaymentReceipt
from checkout.money import Money
from checkout.pricing import PricingEngine

logger = logging.getLogger(__name__)

DEFAULT_MAX_CASH_TENDER = Decimal("100000")

_CARD_SUFFIX = re.compile(r"[0-9]{4}")


class PaymentStrategy(ABC):
    """Settles a bill with one payment method."""

    method: str

    def __init__(self, pricing: PricingEngine):
        self.pricing = pricing

    @abstractmethod
    def pay(self, bill: Bill, tender, policy: DiscountPolicy | None = None) -> PaymentReceipt:
        ...


class CashPaymentStrategy(PaymentStrategy):
    """Cash: tender must cover the total; the excess is returned as change."""

    method = "CASH"

    def __init__(self, pricing: PricingEngine, max_tender: Decimal | int = DEFAULT_MAX_CASH_TENDER):
        super().__init__(pricing)
        self.max_tender = Money.of(max_tender)

    def pay(self, bill: Bill, tender: CashTender, policy: DiscountPolicy | None = None) -> PaymentReceipt:
        if not isinstance(tender, CashTender):
            raise InvalidInputError(f"Cash payment requires a cash tender, got {type(tender).__name__}")

        amount = tender.amount
        if amount <= Money.ZERO:
            raise InvalidInputError(f"Cash amount must be greater than zero. Provided: {amount}")
        if amount > self.max_tender:
            raise InvalidInputError(
                f"Cash amount too large. Maximum allowed: {self.max_tender}. Provided: {amount}"
            )

        breakdown = self.pricing.finalize(bill, policy)

        if amount < breakdown.total:
            raise InsufficientPaymentError(
                f"Insufficient payment amount. Bill total: {breakdown.total}, payment: {amount}"
            )

        change = amount - breakdown.total
        logger.info("Cash accepted for bill %s: total %s, change %s", bill.number, breakdown.total, change)
        return PaymentReceipt(method=self.method, paid=amount, change=change)


class CardPaymentStrategy(PaymentStrategy):
    """Card: the charged amount must equal the total exactly. Only the last four digits are kept."""

    method = "CARD"

    def pay(self, bill: Bill, tender: CardTender, policy: DiscountPolicy | None = None) -> PaymentReceipt:
        if not isinstance(tender, CardTender):
            raise InvalidInputError(f"Card payment requires a card tender, got {type(tender).__name__}")

        last4 = tender.last4 or ""
        if not last4.strip():
            raise InvalidInputError("Card number cannot be empty")
        if not _CARD_SUFFIX.fullmatch(last4):
            raise InvalidInputError("Card number must be 4 digits")

        breakdown = self.pricing.finalize(bill, policy)

        charged = tender.amount if tender.amount is not None else breakdown.total
        if charged != breakdown.total:
            raise PaymentMismatchError(
                f"Card amount must equal total ({breakdown.total}), got {charged}"
            )

        logger.info("Card ****%s accepted for bill %s: total %s", last4, bill.number, breakdown.total)
        return PaymentReceipt(method=self.method, paid=charged, change=Money.ZERO, card_last4=last4)


class PaymentRegistry:
    """Payment strategies keyed by case-insensitive method name."""

    def __init__(self, strategies: list[PaymentStrategy] | None = None):
        self._strategies: dict[str, PaymentStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    @classmethod
    def default(cls, pricing: PricingEngine, max_cash_tender: Decimal | int = DEFAULT_MAX_CASH_TENDER) -> "PaymentRegistry":
        """Registry with the built-in CASH and CARD strategies."""
        return cls([
            CashPaymentStrategy(pricing, max_cash_tender),
            CardPaymentStrategy(pricing),
        ])

    def register(self, strategy: PaymentStrategy, method: str | None = None) -> None:
        self._strategies[(method or strategy.method).upper()] = strategy

    def get(self, method: str) -> PaymentStrategy:
        strategy = self._strategies.get((method or "").strip().upper())
        if strategy is None:
            raise UnsupportedPaymentMethodError(method)
        return strategy

    def methods(self) -> list[str]:
        return sorted(self._strategies)

    def process(self, bill: Bill, tender, policy: DiscountPolicy | None = None) -> PaymentReceipt:
        """Dispatch a tender to the strategy registered for its method."""
        return self.get(tender.method).pay(bill, tender, policy)

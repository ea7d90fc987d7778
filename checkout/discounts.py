"""
Discount policies.

A policy is a stateless function from a bill to a discount amount, plus a
stable code for audit and receipt display. Policies never clamp; the
pricing engine decides how much of a discount can actually be applied.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime

from checkout.errors import InvalidInputError
from checkout.models import Bill, BatchDiscount
from checkout.money import Money
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class DiscountPolicy(ABC):
    """Computes a discount amount for a bill."""

    @property
    @abstractmethod
    def code(self) -> str:
        """Stable identifier shown on receipts."""

    @abstractmethod
    def compute_discount(self, bill: Bill) -> Money:
        ...

    def notes(self, bill: Bill) -> list[str]:
        """Per-discount detail lines for the receipt. None by default."""
        return []

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.code}>"


class PercentageDiscount(DiscountPolicy):
    """A flat percentage off the subtotal."""

    def __init__(self, percent: int):
        if percent < 0 or percent > 100:
            raise InvalidInputError(f"Percent must be between 0 and 100, got {percent}")
        self.percent = percent

    @property
    def code(self) -> str:
        return f"PERCENTAGE({self.percent}%)"

    def compute_discount(self, bill: Bill) -> Money:
        if self.percent == 0:
            return Money.ZERO
        return bill.compute_subtotal() * self.percent / 100


class BogoPolicy(DiscountPolicy):
    """Buy one get one free: every second unit of a line is free."""

    @property
    def code(self) -> str:
        return "BOGO"

    def compute_discount(self, bill: Bill) -> Money:
        discount = Money.ZERO
        for line in bill.lines:
            free_units = line.quantity // 2
            if free_units > 0:
                discount = discount + line.unit_price * free_units
        return discount


class CompositeDiscount(DiscountPolicy):
    """
    Sum of several policies, evaluated in order. None entries are skipped.

    The sum is not capped at the subtotal.
    """

    def __init__(self, policies: Iterable[DiscountPolicy | None]):
        self.policies = tuple(policies)

    @property
    def code(self) -> str:
        return "COMPOSITE"

    def compute_discount(self, bill: Bill) -> Money:
        total = Money.ZERO
        for policy in self.policies:
            if policy is None:
                continue
            total = total + policy.compute_discount(bill)
        return total

    def notes(self, bill: Bill) -> list[str]:
        return [note for policy in self.policies if policy is not None for note in policy.notes(bill)]


class BatchDiscountPolicy(DiscountPolicy):
    """
    Markdowns attached to the specific batches a bill reserved from.

    For each reservation, the saving is the difference between the line's
    unit price and the batch discount's price, times the reserved units.
    Batches without an applicable discount contribute nothing.
    """

    def __init__(
        self,
        find_discount: Callable[[int], BatchDiscount | None],
        clock: Callable[[], datetime] = now_utc,
    ):
        self._find_discount = find_discount
        self._clock = clock

    @property
    def code(self) -> str:
        return "BATCH_DISCOUNT"

    def compute_discount(self, bill: Bill) -> Money:
        now = self._clock()
        discount = Money.ZERO
        for line in bill.lines:
            for reservation in line.reservations:
                batch_discount = self._find_discount(reservation.batch_id)
                if batch_discount is None:
                    continue
                discounted = batch_discount.calculate_discounted_price(line.unit_price, now)
                saving = line.unit_price - discounted
                if saving.is_zero():
                    continue
                discount = discount + saving * reservation.quantity
        return discount

    def notes(self, bill: Bill) -> list[str]:
        """One line per discounted batch, e.g. "APPLE batch 2: 20% off"."""
        now = self._clock()
        notes = []
        for line in bill.lines:
            for reservation in line.reservations:
                batch_discount = self._find_discount(reservation.batch_id)
                if batch_discount is None or not batch_discount.applies_at(now):
                    continue
                note = f"{line.item_code} batch {reservation.batch_id}: {batch_discount.description()}"
                if note not in notes:
                    notes.append(note)
        return notes

    def has_discounts(self, bill: Bill) -> bool:
        """Whether any reserved batch currently carries an applicable discount."""
        now = self._clock()
        for reservation in bill.reservations():
            batch_discount = self._find_discount(reservation.batch_id)
            if batch_discount is not None and batch_discount.applies_at(now):
                return True
        return False

"""Bill aggregate: one sale from first scan to paid receipt.

The bill owns a two-state lifecycle. DRAFT accepts line changes and
pricing; applying a payment receipt moves it to PAID, after which lines
and totals are frozen. The transaction controller layers its own states
on top (see checkout.transaction).
"""

import logging
from collections import defaultdict
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from checkout.errors import IllegalTransactionStateError
from checkout.models.batch import Reservation, StockPool
from checkout.models.payment import PaymentReceipt
from checkout.money import Money, MoneyValue
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    """Sales channel. POS sells from the back-store, ONLINE from the shelf."""

    POS = "POS"
    ONLINE = "ONLINE"

    @property
    def stock_pool(self) -> StockPool:
        return StockPool.STORE if self is Channel.POS else StockPool.SHELF


class BillStatus(str, Enum):
    """Bill lifecycle status."""

    DRAFT = "draft"
    PAID = "paid"


_TRANSITIONS: dict[BillStatus, frozenset[BillStatus]] = {
    BillStatus.DRAFT: frozenset({BillStatus.PAID}),
    BillStatus.PAID: frozenset(),
}


class BillLine(BaseModel):
    """
    One scanned item on a bill.

    unit_price is a snapshot taken when the line was added; later price
    changes in the catalog do not touch it.
    """

    item_code: str
    item_name: str
    unit_price: MoneyValue
    quantity: int = Field(..., gt=0)
    reservations: tuple[Reservation, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def reservations_cover_quantity(self) -> "BillLine":
        """Reserved quantities must add up to exactly the line quantity."""
        reserved = sum(r.quantity for r in self.reservations)
        if reserved != self.quantity:
            raise ValueError(
                f"Reservations for {self.item_code} cover {reserved}, line quantity is {self.quantity}"
            )
        return self

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


class Bill(BaseModel):
    """A sale in progress or completed. Lines keep insertion order."""

    number: str
    created_at: datetime = Field(default_factory=now_utc)
    channel: Channel = Channel.POS
    operator: str | None = None
    status: BillStatus = BillStatus.DRAFT
    lines: list[BillLine] = Field(default_factory=list)

    subtotal: MoneyValue = Money.ZERO
    discount: MoneyValue = Money.ZERO
    tax: MoneyValue = Money.ZERO
    total: MoneyValue = Money.ZERO
    discount_code: str | None = None
    discount_notes: list[str] = Field(default_factory=list)

    payment_method: str | None = None
    paid_amount: MoneyValue = Money.ZERO
    change_amount: MoneyValue = Money.ZERO
    card_last4: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == BillStatus.PAID

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def _require_draft(self, operation: str) -> None:
        if self.status != BillStatus.DRAFT:
            raise IllegalTransactionStateError(operation, self.status.name, f"bill {self.number} is paid")

    def _transition(self, target: BillStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise IllegalTransactionStateError(f"move to {target.name}", self.status.name)
        self.status = target

    def add_line(self, line: BillLine) -> None:
        self._require_draft("add line")
        self.lines.append(line)

    def remove_line_by_code(self, item_code: str) -> int:
        """Remove every line for item_code. Returns how many lines were removed."""
        self._require_draft("remove line")
        kept = [line for line in self.lines if line.item_code != item_code]
        removed = len(self.lines) - len(kept)
        self.lines = kept
        return removed

    def compute_subtotal(self) -> Money:
        subtotal = Money.ZERO
        for line in self.lines:
            subtotal = subtotal + line.line_total
        return subtotal

    def set_pricing(
        self,
        subtotal: Money,
        discount: Money,
        tax: Money,
        total: Money,
        discount_code: str | None = None,
        discount_notes=(),
    ) -> None:
        """Write all four totals at once."""
        self._require_draft("reprice")
        self.subtotal = subtotal
        self.discount = discount
        self.tax = tax
        self.total = total
        self.discount_code = discount_code
        self.discount_notes = list(discount_notes)

    def apply_payment(self, receipt: PaymentReceipt) -> None:
        """
        Absorb a payment receipt and move to PAID.

        Re-applying any receipt to a PAID bill is a silent no-op so callers
        can retry safely when unsure whether a previous attempt landed.
        """
        if self.status == BillStatus.PAID:
            logger.debug("Bill %s already paid, ignoring repeated payment", self.number)
            return

        self.payment_method = receipt.method
        self.paid_amount = receipt.paid
        self.change_amount = receipt.change
        self.card_last4 = receipt.card_last4
        self._transition(BillStatus.PAID)

    def reservations(self) -> list[Reservation]:
        """All reservations across lines, in line order."""
        return [r for line in self.lines for r in line.reservations]

    def reserved_quantities(self, pool: StockPool) -> dict[int, int]:
        """Quantity this bill already holds per batch id in a pool."""
        held: dict[int, int] = defaultdict(int)
        for reservation in self.reservations():
            if reservation.pool == pool:
                held[reservation.batch_id] += reservation.quantity
        return dict(held)

    def item_codes(self) -> list[str]:
        """Distinct item codes in first-seen order."""
        return list(dict.fromkeys(line.item_code for line in self.lines))

"""
Domain events for checkout.

Immutable notifications published after a sale is finalized. Publishers
never wait on, or learn about, what subscribers do with them.

Event Categories:
- SaleEvent: Bill lifecycle (paid)
- StockEvent: Stock levels after a commit (restock threshold, depletion)
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from checkout.money import Money
from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class CheckoutEvent:
    """Base class for all checkout domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# SALE EVENTS
# =============================================================================


@dataclass(frozen=True)
class SaleEvent(CheckoutEvent):
    """Events related to the bill lifecycle."""
    pass


@dataclass(frozen=True)
class BillPaid(SaleEvent):
    """A paid bill was committed to the ledger and its receipt written."""
    bill_number: str = ""
    total: Money = Money.ZERO
    channel: str = "POS"
    operator: str | None = None

    @classmethod
    def create(cls, bill) -> "BillPaid":
        return cls(
            bill_number=bill.number,
            total=bill.total,
            channel=bill.channel.value,
            operator=bill.operator,
        )


# =============================================================================
# STOCK EVENTS
# =============================================================================


@dataclass(frozen=True)
class StockEvent(CheckoutEvent):
    """Events related to stock levels."""
    item_code: str = ""


@dataclass(frozen=True)
class RestockThresholdHit(StockEvent):
    """Sellable stock (shelf + store) fell to or below the item's threshold."""
    remaining: int = 0
    threshold: int = 0

    @classmethod
    def create(cls, item_code: str, remaining: int, threshold: int) -> "RestockThresholdHit":
        return cls(item_code=item_code, remaining=remaining, threshold=threshold)


@dataclass(frozen=True)
class StockDepleted(StockEvent):
    """No sellable stock left for an item."""

    @classmethod
    def create(cls, item_code: str) -> "StockDepleted":
        return cls(item_code=item_code)

"""
Checkout service: turns a paid bill into committed stock, a stored bill,
a receipt on disk and the events that follow a sale.
"""

import logging

from checkout.errors import IllegalTransactionStateError
from checkout.event_bus import EventBus
from checkout.events import BillPaid, RestockThresholdHit, StockDepleted
from checkout.ledger import StockLedger
from checkout.models import Bill, StockPool, DEFAULT_RESTOCK_LEVEL
from checkout.receipts import ReceiptWriter

logger = logging.getLogger(__name__)


class CheckoutService:
    """Service for completing paid bills."""

    def __init__(
        self,
        ledger: StockLedger,
        event_bus: EventBus,
        receipt_writer: ReceiptWriter | None = None,
        bill_repository=None,
        threshold_floor: int = DEFAULT_RESTOCK_LEVEL,
    ):
        self.ledger = ledger
        self.event_bus = event_bus
        self.receipt_writer = receipt_writer
        self.bill_repository = bill_repository
        self.threshold_floor = threshold_floor

    def _require_paid(self, bill: Bill, operation: str) -> None:
        if not bill.is_paid:
            raise IllegalTransactionStateError(operation, bill.status.name, f"bill {bill.number} is not paid")

    def complete(self, bill: Bill) -> None:
        """
        Commit, store and announce a paid bill.

        Args:
            bill: Bill in PAID status

        Raises:
            IllegalTransactionStateError: If the bill is not paid
            InsufficientStockError: If stock ran out since allocation; nothing is committed
            ReceiptWriteError: If the receipt could not be written
        """
        self.commit(bill)
        self.record(bill)

    def commit(self, bill: Bill) -> None:
        """Deduct the bill's reservations from the ledger. All-or-nothing."""
        self._require_paid(bill, "commit stock")
        self.ledger.commit_reservations(bill.reservations())
        logger.info("Committed stock for bill %s", bill.number)

    def record(self, bill: Bill) -> None:
        """
        Persist the bill, write its receipt and publish events.

        Safe to repeat after a failure: it never touches stock.
        """
        self._require_paid(bill, "record bill")

        if self.bill_repository is not None:
            self.bill_repository.save(bill)

        if self.receipt_writer is not None:
            self.receipt_writer.write(bill)

        self.event_bus.publish(BillPaid.create(bill))
        self.publish_stock_levels(bill)

        logger.info("Bill %s completed: total %s via %s", bill.number, bill.total, bill.payment_method)

    def publish_stock_levels(self, bill: Bill) -> None:
        """
        Announce depletion or low stock for each item on the bill.

        Sellable stock is shelf plus store. A failure checking one item is
        logged and the rest are still checked.
        """
        for item_code in bill.item_codes():
            try:
                remaining = (
                    self.ledger.stock_level(item_code, StockPool.SHELF)
                    + self.ledger.stock_level(item_code, StockPool.STORE)
                )
                threshold = self.threshold_for(item_code)

                if remaining == 0:
                    self.event_bus.publish(StockDepleted.create(item_code))
                elif remaining <= threshold:
                    self.event_bus.publish(RestockThresholdHit.create(item_code, remaining, threshold))
            except Exception:
                logger.exception("Stock level check failed for %s on bill %s", item_code, bill.number)

    def threshold_for(self, item_code: str) -> int:
        item = self.ledger.get_item(item_code)
        return max(self.threshold_floor, item.restock_level)

"""
Transaction controller: one sale at a terminal, from first scan to
completed receipt.

The controller runs its own four-state lifecycle on top of the bill's
DRAFT/PAID lifecycle:

    EMPTY --add_item--> ACTIVE --process_payment--> PAID --finalize--> COMPLETED
      ^                   |
      +---remove_item-----+   (when the last line is removed)

Stock is only reserved while the sale is open. Nothing in the ledger
changes until finalize(), so an abandoned controller leaves stock untouched.
"""

import logging
import re
from enum import Enum

from pydantic import TypeAdapter, ValidationError

from checkout.allocator import FefoAllocator
from checkout.bill_numbers import BillNumberGenerator
from checkout.discounts import BatchDiscountPolicy, CompositeDiscount, DiscountPolicy
from checkout.errors import IllegalTransactionStateError, InvalidInputError
from checkout.ledger import StockLedger
from checkout.models import Bill, BillLine, Channel, Item, PaymentReceipt, PaymentRequest, StockPool
from checkout.payments import PaymentRegistry
from checkout.pricing import PricingBreakdown, PricingEngine
from checkout.services.checkout_service import CheckoutService
from checkout.services.reservation_service import ReservationService, SmartPick

logger = logging.getLogger(__name__)

ITEM_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
DEFAULT_MAX_LINE_QUANTITY = 10000

_tender_adapter = TypeAdapter(PaymentRequest)


class TransactionState(str, Enum):
    """Controller lifecycle state."""

    EMPTY = "empty"
    ACTIVE = "active"
    PAID = "paid"
    COMPLETED = "completed"


_ALLOWED_OPERATIONS: dict[TransactionState, frozenset[str]] = {
    TransactionState.EMPTY: frozenset({"add item"}),
    TransactionState.ACTIVE: frozenset({"add item", "remove item", "apply discount", "preview total", "process payment"}),
    TransactionState.PAID: frozenset({"finalize"}),
    TransactionState.COMPLETED: frozenset(),
}

_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.EMPTY: frozenset({TransactionState.ACTIVE}),
    TransactionState.ACTIVE: frozenset({TransactionState.EMPTY, TransactionState.PAID}),
    TransactionState.PAID: frozenset({TransactionState.COMPLETED}),
    TransactionState.COMPLETED: frozenset(),
}


class TransactionController:
    """
    Drives a single sale.

    Each controller handles exactly one bill. Once COMPLETED it refuses
    every operation; start a new controller for the next customer.
    """

    def __init__(
        self,
        ledger: StockLedger,
        pricing: PricingEngine,
        payments: PaymentRegistry,
        checkout: CheckoutService,
        bill_numbers: BillNumberGenerator,
        channel: Channel = Channel.POS,
        operator: str | None = None,
        max_line_quantity: int = DEFAULT_MAX_LINE_QUANTITY,
        allocator: FefoAllocator | None = None,
        auto_batch_discounts: bool = True,
        reservation_service: ReservationService | None = None,
    ):
        self.ledger = ledger
        self.pricing = pricing
        self.payments = payments
        self.checkout = checkout
        self.bill_numbers = bill_numbers
        self.channel = channel
        self.operator = operator
        self.max_line_quantity = max_line_quantity
        self.allocator = allocator or FefoAllocator()
        self.auto_batch_discounts = auto_batch_discounts
        self.reservation_service = reservation_service or ReservationService(ledger, self.allocator)

        self._state = TransactionState.EMPTY
        self._bill: Bill | None = None
        self._discount: DiscountPolicy | None = None
        self._committed = False

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def bill(self) -> Bill | None:
        return self._bill

    @property
    def discount(self) -> DiscountPolicy | None:
        return self._discount

    # ========================================================================
    # State machine
    # ========================================================================

    def _require(self, operation: str) -> None:
        if operation not in _ALLOWED_OPERATIONS[self._state]:
            raise IllegalTransactionStateError(operation, self._state.name)

    def _transition(self, target: TransactionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise IllegalTransactionStateError(f"move to {target.name}", self._state.name)
        logger.debug("Transaction %s: %s -> %s", self._bill.number if self._bill else "-", self._state.name, target.name)
        self._state = target

    # ========================================================================
    # Lines
    # ========================================================================

    def _validate_line_input(self, item_code: str, quantity: int) -> str:
        item_code = (item_code or "").strip()
        if not item_code:
            raise InvalidInputError("Item code cannot be empty")
        if not ITEM_CODE_PATTERN.match(item_code):
            raise InvalidInputError(f"Invalid item code format: {item_code}")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidInputError(f"Quantity must be a whole number, got {quantity!r}")
        if quantity <= 0:
            raise InvalidInputError(f"Quantity must be greater than zero, got {quantity}")
        if quantity > self.max_line_quantity:
            raise InvalidInputError(f"Quantity too large. Maximum allowed: {self.max_line_quantity}")
        return item_code

    def add_item(self, item_code: str, quantity: int) -> BillLine:
        """
        Reserve stock for an item and add it to the bill.

        The first successful add opens a new bill. If the first add fails,
        no bill is created and the controller stays EMPTY.

        Args:
            item_code: Item to sell
            quantity: Units, 1 to max_line_quantity

        Returns:
            The line that was added

        Raises:
            IllegalTransactionStateError: If the bill is paid or completed
            InvalidInputError: If item code or quantity is malformed
            ItemNotFoundError: If the item does not exist
            InsufficientStockError: If the channel's pool cannot cover quantity
        """
        self._require("add item")
        item_code = self._validate_line_input(item_code, quantity)

        item = self.ledger.get_item(item_code)
        pool = self.channel.stock_pool
        held = self._bill.reserved_quantities(pool) if self._bill is not None else {}

        reservations = self.allocator.allocate(
            item_code,
            quantity,
            self.ledger.find_batches(item_code, pool),
            pool,
            held=held,
        )

        return self._add_line(item, quantity, reservations)

    def add_item_smart(
        self,
        item_code: str,
        quantity: int,
        use_other_pool: bool = False,
        backfill_from_main: bool = False,
    ) -> SmartPick:
        """
        Like add_item, but may also draw from the other sales-floor pool
        and, with manager approval, from the main warehouse.

        Returns:
            The SmartPick; its reservations back the new line

        Raises:
            ApprovalRequiredError: If the pick needs an approval not given
            PermissionDeniedError: If a warehouse move is refused
            plus everything add_item raises
        """
        self._require("add item")
        item_code = self._validate_line_input(item_code, quantity)

        item = self.ledger.get_item(item_code)
        held = {}
        if self._bill is not None:
            held = {pool: self._bill.reserved_quantities(pool) for pool in (StockPool.SHELF, StockPool.STORE)}

        pick = self.reservation_service.reserve_smart(
            item_code,
            quantity,
            self.channel,
            use_other_pool=use_other_pool,
            backfill_from_main=backfill_from_main,
            held=held,
        )
        self._add_line(item, quantity, pick.reservations)
        return pick

    def _add_line(self, item: Item, quantity: int, reservations) -> BillLine:
        line = BillLine(
            item_code=item.code,
            item_name=item.name,
            unit_price=item.unit_price,
            quantity=quantity,
            reservations=tuple(reservations),
        )

        if self._state == TransactionState.EMPTY:
            bill = Bill(
                number=self.bill_numbers.next(),
                channel=self.channel,
                operator=self.operator,
            )
            bill.add_line(line)
            self._bill = bill
            self._transition(TransactionState.ACTIVE)
            logger.info("Opened bill %s on %s", bill.number, self.channel.value)
        else:
            self._bill.add_line(line)

        logger.info("Added %d x %s to bill %s", quantity, item.code, self._bill.number)
        return line

    def remove_item(self, item_code: str) -> int:
        """
        Remove every line for an item, releasing its reservations.

        Removing an item that is not on the bill is a no-op. Removing the
        last line discards the bill and returns to EMPTY.

        Returns:
            Number of lines removed
        """
        self._require("remove item")

        removed = self._bill.remove_line_by_code(item_code)
        if removed == 0:
            logger.warning("Item %s is not on bill %s, nothing removed", item_code, self._bill.number)
            return 0

        logger.info("Removed %s from bill %s", item_code, self._bill.number)
        if self._bill.is_empty:
            logger.info("Bill %s is empty, discarding", self._bill.number)
            self._transition(TransactionState.EMPTY)
            self._bill = None
            self._discount = None
        return removed

    # ========================================================================
    # Pricing
    # ========================================================================

    def apply_discount(self, policy: DiscountPolicy | None) -> None:
        """Set the manual discount for this sale. None clears it."""
        self._require("apply discount")
        self._discount = policy
        logger.info("Discount %s applied to bill %s", policy.code if policy else None, self._bill.number)

    def effective_policy(self) -> DiscountPolicy | None:
        """
        Discount the bill will be priced with.

        On POS, live batch markdowns on the reserved batches are added to
        the manual discount.
        """
        policies: list[DiscountPolicy] = []
        if self.auto_batch_discounts and self.channel == Channel.POS and self._bill is not None:
            batch_policy = BatchDiscountPolicy(self.ledger.find_active_batch_discount)
            if batch_policy.has_discounts(self._bill):
                policies.append(batch_policy)
        if self._discount is not None:
            policies.append(self._discount)

        if not policies:
            return None
        if len(policies) == 1:
            return policies[0]
        return CompositeDiscount(policies)

    def total(self) -> PricingBreakdown:
        """Preview the bill's totals without writing them."""
        self._require("preview total")
        return self.pricing.preview(self._bill, self.effective_policy())

    # ========================================================================
    # Payment and completion
    # ========================================================================

    def process_payment(self, tender) -> PaymentReceipt:
        """
        Price the bill and settle it with a tender.

        Args:
            tender: CashTender, CardTender, or a dict such as {"method": "CASH", "amount": "20.00"}

        Returns:
            The accepted payment receipt

        Raises:
            IllegalTransactionStateError: If not ACTIVE
            InvalidInputError: If the tender is malformed
            PaymentError: If the tender is rejected; the controller stays ACTIVE
        """
        self._require("process payment")

        if isinstance(tender, dict):
            try:
                tender = _tender_adapter.validate_python(tender)
            except ValidationError as e:
                raise InvalidInputError(f"Invalid payment request: {e}") from e

        receipt = self.payments.process(self._bill, tender, self.effective_policy())
        self._bill.apply_payment(receipt)
        self._transition(TransactionState.PAID)
        return receipt

    def finalize(self) -> Bill:
        """
        Commit stock, store the bill, write the receipt and publish events.

        Stock is committed at most once. If a later step fails the
        controller stays PAID, and calling finalize() again resumes after
        the commit.

        Raises:
            IllegalTransactionStateError: If not PAID
            InsufficientStockError: If stock ran out since allocation
            ReceiptWriteError: If the receipt could not be written
        """
        self._require("finalize")

        if not self._committed:
            self.checkout.commit(self._bill)
            self._committed = True

        self.checkout.record(self._bill)
        self._transition(TransactionState.COMPLETED)
        return self._bill

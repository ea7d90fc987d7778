"""Shared test fixtures for checkout test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from checkout.bill_numbers import SequentialBillNumberGenerator
from checkout.event_bus import EventBus
from checkout.ledger import InMemoryStockLedger
from checkout.models import Bill, BillLine, Channel, Item, Reservation, StockPool
from checkout.money import Money
from checkout.payments import PaymentRegistry
from checkout.pricing import PricingEngine
from checkout.services.checkout_service import CheckoutService
from checkout.transaction import TransactionController


# =============================================================================
# TEST CONSTANTS
# =============================================================================

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

APPLE = Item(code="APPLE", name="Apple", unit_price="10.00", restock_level=5)
BREAD = Item(code="BREAD", name="Bread", unit_price="2.50", restock_level=5)
MILK = Item(code="MILK", name="Milk", unit_price="12.34", restock_level=5)


def make_line(item: Item, quantity: int, batch_id: int = 1, pool: StockPool = StockPool.STORE) -> BillLine:
    """A bill line backed by a single reservation."""
    return BillLine(
        item_code=item.code,
        item_name=item.name,
        unit_price=item.unit_price,
        quantity=quantity,
        reservations=(Reservation(batch_id=batch_id, item_code=item.code, quantity=quantity, pool=pool),),
    )


def make_bill(*lines: BillLine, number: str = "POS-20240601-0001") -> Bill:
    bill = Bill(number=number, channel=Channel.POS, operator="alice")
    for line in lines:
        bill.add_line(line)
    return bill


# =============================================================================
# LEDGER FIXTURES
# =============================================================================


@pytest.fixture
def ledger() -> InMemoryStockLedger:
    """
    In-memory ledger with three items.

    APPLE: batch 1 (expires 2024-07-01) and batch 2 (expires 2024-06-15),
           20 each in the store, 10 on the shelf, 100 in main.
    BREAD: batch 3, no expiry, 30 in the store and 30 on the shelf.
    MILK:  batch 4, 10 in the store and 10 on the shelf.
    """
    ledger = InMemoryStockLedger()
    for item in (APPLE, BREAD, MILK):
        ledger.add_item(item)

    ledger.add_batch("APPLE", date(2024, 7, 1), qty_on_shelf=10, qty_in_store=20, qty_in_main=100, batch_id=1)
    ledger.add_batch("APPLE", date(2024, 6, 15), qty_on_shelf=10, qty_in_store=20, qty_in_main=100, batch_id=2)
    ledger.add_batch("BREAD", None, qty_on_shelf=30, qty_in_store=30, batch_id=3)
    ledger.add_batch("MILK", date(2024, 6, 20), qty_on_shelf=10, qty_in_store=10, batch_id=4)
    return ledger


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def pricing() -> PricingEngine:
    return PricingEngine(tax_percent=Decimal("0"))


@pytest.fixture
def payments(pricing) -> PaymentRegistry:
    return PaymentRegistry.default(pricing)


@pytest.fixture
def checkout_service(ledger, event_bus) -> CheckoutService:
    return CheckoutService(ledger, event_bus, threshold_floor=0)


@pytest.fixture
def bill_numbers() -> SequentialBillNumberGenerator:
    return SequentialBillNumberGenerator("POS", clock=lambda: FIXED_NOW)


@pytest.fixture
def make_controller(ledger, pricing, payments, checkout_service, bill_numbers):
    """Factory for controllers sharing the test ledger."""

    def factory(channel: Channel = Channel.POS, **kwargs) -> TransactionController:
        return TransactionController(
            ledger=kwargs.pop("ledger", ledger),
            pricing=kwargs.pop("pricing", pricing),
            payments=kwargs.pop("payments", payments),
            checkout=kwargs.pop("checkout", checkout_service),
            bill_numbers=kwargs.pop("bill_numbers", bill_numbers),
            channel=channel,
            operator=kwargs.pop("operator", "alice"),
            **kwargs,
        )

    return factory


@pytest.fixture
def controller(make_controller) -> TransactionController:
    return make_controller()


@pytest.fixture
def money():
    """Shorthand for building Money in assertions."""
    return Money.of

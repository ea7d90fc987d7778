"""
Terminal wiring.

Builds the services one checkout lane needs from a CheckoutConfig and
hands out a fresh TransactionController per customer.
"""

import logging

from auth.permissions import PermissionCheckedStockLedger
from auth.session import ActorSession
from checkout.bill_numbers import BillNumberGenerator, SequentialBillNumberGenerator
from checkout.config import CheckoutConfig, get_database_url
from checkout.event_bus import EventBus
from checkout.handlers.restock_handler import handle_restock_threshold_hit
from checkout.handlers.stock_alert_handler import log_restock_threshold_hit, log_stock_depleted
from checkout.ledger import StockLedger
from checkout.models import Channel
from checkout.payments import PaymentRegistry
from checkout.pricing import PricingEngine
from checkout.receipts import ReceiptWriter, TextReceiptWriter
from checkout.repositories import (
    BillRepository,
    PostgresBillNumberGenerator,
    PostgresBillRepository,
    PostgresStockLedger,
)
from checkout.services.checkout_service import CheckoutService
from checkout.services.restock_service import RestockService
from checkout.transaction import TransactionController
from clients.postgres_client import PostgresClient

logger = logging.getLogger(__name__)


class Terminal:
    """
    One checkout lane.

    The ledger is wrapped so privileged stock operations are checked
    against whoever is logged in to this terminal's session. Low-stock
    events are logged. With auto_restock the shelf is also topped up from
    the back-store, which suits lanes that sell from the shelf; a POS lane
    sells from the back-store and should leave it off.
    """

    def __init__(
        self,
        config: CheckoutConfig,
        ledger: StockLedger,
        session: ActorSession | None = None,
        bill_numbers: BillNumberGenerator | None = None,
        bill_repository: BillRepository | None = None,
        receipt_writer: ReceiptWriter | None = None,
        auto_restock: bool = False,
    ):
        self.config = config
        self.session = session or ActorSession()
        self.ledger = PermissionCheckedStockLedger(ledger, self.session)
        self.bill_numbers = bill_numbers or SequentialBillNumberGenerator(config.bill_number_prefix)

        self.event_bus = EventBus()
        self.pricing = PricingEngine(config.tax_percent)
        self.payments = PaymentRegistry.default(self.pricing, config.max_cash_tender)
        self.checkout = CheckoutService(
            self.ledger,
            self.event_bus,
            receipt_writer=receipt_writer or TextReceiptWriter(config.receipt_dir, config.receipt_timezone),
            bill_repository=bill_repository,
            threshold_floor=config.restock_threshold_floor,
        )
        self.restock = RestockService(self.ledger)

        self.event_bus.subscribe("RestockThresholdHit", log_restock_threshold_hit)
        self.event_bus.subscribe("StockDepleted", log_stock_depleted)
        if auto_restock:
            self.event_bus.subscribe("RestockThresholdHit", handle_restock_threshold_hit(self.restock))

    @classmethod
    def from_database(
        cls,
        config: CheckoutConfig,
        database_url: str | None = None,
        session: ActorSession | None = None,
    ) -> "Terminal":
        """Terminal backed by PostgreSQL for stock, bills and bill numbers."""
        postgres = PostgresClient(database_url or get_database_url())
        return cls(
            config,
            PostgresStockLedger(postgres, default_restock_level=config.default_restock_level),
            session=session,
            bill_numbers=PostgresBillNumberGenerator(postgres, config.bill_number_prefix),
            bill_repository=PostgresBillRepository(postgres),
        )

    @property
    def operator(self) -> str:
        """Logged-in username, or the configured default operator."""
        user = self.session.current
        return user.username if user is not None else self.config.default_operator

    def new_transaction(self, channel: Channel | None = None) -> TransactionController:
        """Start a sale for the next customer."""
        channel = channel or self.config.default_channel
        logger.debug("New %s transaction for %s", channel.value, self.operator)
        return TransactionController(
            self.ledger,
            self.pricing,
            self.payments,
            self.checkout,
            self.bill_numbers,
            channel=channel,
            operator=self.operator,
            max_line_quantity=self.config.max_line_quantity,
        )

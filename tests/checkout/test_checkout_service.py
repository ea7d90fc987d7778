"""Tests for CheckoutService - completing paid bills."""

import logging
from unittest.mock import Mock

import pytest

from checkout.errors import IllegalTransactionStateError, InsufficientStockError
from checkout.events import BillPaid, RestockThresholdHit, StockDepleted
from checkout.ledger import StockLedger
from checkout.models import PaymentReceipt, StockPool
from checkout.receipts import ReceiptWriter
from checkout.repositories import BillRepository
from checkout.services.checkout_service import CheckoutService

from conftest import APPLE, MILK, make_bill, make_line


def _paid(*lines):
    bill = make_bill(*lines)
    bill.apply_payment(PaymentReceipt(method="CASH", paid="100.00"))
    return bill


@pytest.fixture
def received(event_bus):
    events = []
    for name in ("BillPaid", "RestockThresholdHit", "StockDepleted"):
        event_bus.subscribe(name, events.append)
    return events


class TestComplete:

    def test_runs_steps_in_order(self, ledger, event_bus, received):
        calls = []
        repository = Mock(spec=BillRepository)
        repository.save.side_effect = lambda bill: calls.append("save")
        writer = Mock(spec=ReceiptWriter)
        writer.write.side_effect = lambda bill: calls.append("write")
        event_bus.subscribe("BillPaid", lambda e: calls.append("event"))

        service = CheckoutService(ledger, event_bus, receipt_writer=writer, bill_repository=repository)
        bill = _paid(make_line(APPLE, 5, batch_id=2))
        service.complete(bill)

        assert calls == ["save", "write", "event"]
        assert ledger.get_batch(2).qty_in_store == 15
        assert isinstance(received[0], BillPaid)
        assert received[0].bill_number == bill.number
        assert received[0].operator == "alice"

    def test_requires_paid_bill(self, checkout_service, ledger):
        bill = make_bill(make_line(APPLE, 5, batch_id=2))
        with pytest.raises(IllegalTransactionStateError, match="not paid"):
            checkout_service.complete(bill)
        assert ledger.get_batch(2).qty_in_store == 20

    def test_commit_failure_stops_everything(self, checkout_service, received):
        bill = _paid(make_line(MILK, 11, batch_id=4))
        with pytest.raises(InsufficientStockError):
            checkout_service.complete(bill)
        assert received == []

    def test_record_never_touches_stock(self, checkout_service, ledger):
        bill = _paid(make_line(APPLE, 5, batch_id=2))
        checkout_service.record(bill)
        checkout_service.record(bill)
        assert ledger.get_batch(2).qty_in_store == 20


class TestStockLevelEvents:

    def test_depleted(self, checkout_service, ledger, received):
        ledger.transfer("MILK", 10, StockPool.SHELF, StockPool.MAIN)
        checkout_service.complete(_paid(make_line(MILK, 10, batch_id=4)))

        depleted = [e for e in received if isinstance(e, StockDepleted)]
        assert [e.item_code for e in depleted] == ["MILK"]

    def test_threshold_uses_item_restock_level(self, checkout_service, received):
        # MILK restock level 5: 10 shelf + 5 store left after selling 5 is above it
        checkout_service.complete(_paid(make_line(MILK, 5, batch_id=4)))
        assert not any(isinstance(e, RestockThresholdHit) for e in received)

    def test_threshold_floor(self, ledger, event_bus, received):
        service = CheckoutService(ledger, event_bus, threshold_floor=50)
        service.complete(_paid(make_line(MILK, 5, batch_id=4)))

        hits = [e for e in received if isinstance(e, RestockThresholdHit)]
        assert len(hits) == 1
        assert hits[0].item_code == "MILK"
        assert hits[0].remaining == 15
        assert hits[0].threshold == 50

    def test_one_item_failure_does_not_block_others(self, event_bus, received, caplog):
        def get_item(code):
            if code == "APPLE":
                raise RuntimeError("db down")
            return MILK

        ledger = Mock(spec=StockLedger)
        ledger.stock_level.return_value = 0
        ledger.get_item.side_effect = get_item
        service = CheckoutService(ledger, event_bus)

        bill = _paid(make_line(APPLE, 1, batch_id=1), make_line(MILK, 1, batch_id=4))
        with caplog.at_level(logging.ERROR, logger="checkout.services.checkout_service"):
            service.publish_stock_levels(bill)

        assert "Stock level check failed for APPLE" in caplog.text
        assert [e.item_code for e in received if isinstance(e, StockDepleted)] == ["MILK"]

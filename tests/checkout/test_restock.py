"""Tests for RestockService and the restock event handler."""

import pytest

from checkout.errors import InsufficientStockError, InvalidInputError, ItemNotFoundError
from checkout.event_bus import EventBus
from checkout.events import RestockThresholdHit
from checkout.handlers.restock_handler import handle_restock_threshold_hit
from checkout.models import StockPool
from checkout.services.restock_service import RestockService


@pytest.fixture
def restock(ledger):
    return RestockService(ledger)


class TestRestockFixed:

    def test_moves_from_store_to_shelf(self, restock, ledger):
        moves = restock.restock_fixed("APPLE", 5)
        assert [(m.batch_id, m.quantity) for m in moves] == [(2, 5)]
        assert ledger.stock_level("APPLE", StockPool.SHELF) == 25

    def test_moves_what_store_has(self, restock, ledger):
        restock.restock_fixed("MILK", 50)
        assert ledger.stock_level("MILK", StockPool.STORE) == 0
        assert ledger.stock_level("MILK", StockPool.SHELF) == 20

    def test_empty_store(self, restock, ledger):
        ledger.transfer("MILK", 10, StockPool.STORE, StockPool.SHELF)
        with pytest.raises(InsufficientStockError):
            restock.restock_fixed("MILK", 1)

    def test_unknown_item(self, restock):
        with pytest.raises(ItemNotFoundError):
            restock.restock_fixed("NOPE", 1)

    def test_non_positive_quantity(self, restock):
        with pytest.raises(InvalidInputError):
            restock.restock_fixed("APPLE", 0)


class TestRestockToTarget:

    def test_tops_up_to_target(self, restock, ledger):
        restock.restock_to_target("APPLE", 30)
        assert ledger.stock_level("APPLE", StockPool.SHELF) == 30

    def test_already_at_target(self, restock, ledger):
        assert restock.restock_to_target("APPLE", 20) == []
        assert ledger.stock_level("APPLE", StockPool.STORE) == 40

    def test_limited_by_store(self, restock, ledger):
        restock.restock_to_target("MILK", 100)
        assert ledger.stock_level("MILK", StockPool.SHELF) == 20


class TestBackfillFromMain:

    def test_moves_main_to_store(self, restock, ledger):
        restock.backfill_from_main("APPLE", 30)
        assert ledger.stock_level("APPLE", StockPool.STORE) == 70
        assert ledger.stock_level("APPLE", StockPool.MAIN) == 170

    def test_moves_main_to_shelf(self, restock, ledger):
        restock.backfill_from_main("APPLE", 5, StockPool.SHELF)
        assert ledger.stock_level("APPLE", StockPool.SHELF) == 25

    def test_main_is_not_a_target(self, restock):
        with pytest.raises(InvalidInputError):
            restock.backfill_from_main("APPLE", 5, StockPool.MAIN)

    def test_insufficient_main(self, restock):
        with pytest.raises(InsufficientStockError):
            restock.backfill_from_main("BREAD", 1)


class TestRestockHandler:

    def test_tops_up_shelf_on_event(self, restock, ledger):
        bus = EventBus()
        bus.subscribe("RestockThresholdHit", handle_restock_threshold_hit(restock, shelf_target=40))

        bus.publish(RestockThresholdHit.create("APPLE", remaining=5, threshold=50))

        assert ledger.stock_level("APPLE", StockPool.SHELF) == 40

    def test_defaults_to_event_threshold(self, restock, ledger):
        handler = handle_restock_threshold_hit(restock)
        handler(RestockThresholdHit.create("BREAD", remaining=10, threshold=45))
        assert ledger.stock_level("BREAD", StockPool.SHELF) == 45

    def test_failure_contained_by_bus(self, restock, ledger, caplog):
        bus = EventBus()
        bus.subscribe("RestockThresholdHit", handle_restock_threshold_hit(restock))
        ledger.transfer("MILK", 10, StockPool.STORE, StockPool.SHELF)

        bus.publish(RestockThresholdHit.create("MILK", remaining=20, threshold=50))

        assert "Handler handler failed for RestockThresholdHit" in caplog.text

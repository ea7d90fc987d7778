"""Tests for the permission-checking ledger wrapper."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from auth.exceptions import NotAuthenticatedError, PermissionDeniedError
from auth.permissions import PermissionCheckedStockLedger, requires_role
from auth.session import ActorSession
from auth.types import Role, User
from checkout.models import DiscountType, StockPool
from checkout.services.restock_service import RestockService

CASHIER = User(username="alice", role=Role.CASHIER)
MANAGER = User(username="morgan", role=Role.INVENTORY_MANAGER)
ADMIN = User(username="root", role=Role.ADMIN)

VALID_FROM = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def session():
    return ActorSession()


@pytest.fixture
def guarded(ledger, session):
    return PermissionCheckedStockLedger(ledger, session)


# =============================================================================
# TRANSFERS
# =============================================================================


class TestTransfer:

    def test_cashier_cannot_move_from_main(self, guarded, session, ledger):
        session.login(CASHIER)
        with pytest.raises(PermissionDeniedError, match="transfer stock out of main"):
            guarded.transfer("APPLE", 5, StockPool.MAIN, StockPool.STORE)
        assert ledger.stock_level("APPLE", StockPool.MAIN) == 200

    def test_logged_out_cannot_move_from_main(self, guarded):
        with pytest.raises(NotAuthenticatedError):
            guarded.transfer("APPLE", 5, StockPool.MAIN, StockPool.STORE)

    @pytest.mark.parametrize("user", [MANAGER, ADMIN])
    def test_managers_can_move_from_main(self, guarded, session, ledger, user):
        session.login(user)
        guarded.transfer("APPLE", 5, StockPool.MAIN, StockPool.STORE)
        assert ledger.stock_level("APPLE", StockPool.STORE) == 45

    def test_store_to_shelf_is_open(self, guarded, ledger):
        guarded.transfer("APPLE", 5, StockPool.STORE, StockPool.SHELF)
        assert ledger.stock_level("APPLE", StockPool.SHELF) == 25

    def test_keyword_arguments_still_checked(self, guarded, session):
        session.login(CASHIER)
        with pytest.raises(PermissionDeniedError):
            guarded.transfer("APPLE", 5, source=StockPool.MAIN, target=StockPool.SHELF)

    def test_restock_service_through_wrapper(self, guarded, session):
        restock = RestockService(guarded)
        session.login(CASHIER)

        restock.restock_fixed("APPLE", 5)
        with pytest.raises(PermissionDeniedError):
            restock.backfill_from_main("APPLE", 5)


# =============================================================================
# BATCH DISCOUNTS
# =============================================================================


class TestBatchDiscounts:

    def test_cashier_cannot_add(self, guarded, session):
        session.login(CASHIER)
        with pytest.raises(PermissionDeniedError, match="add batch discount"):
            guarded.add_batch_discount(1, DiscountType.PERCENTAGE, Decimal("20"), VALID_FROM)

    def test_manager_adds_and_is_recorded_as_creator(self, guarded, session, ledger):
        session.login(MANAGER)
        discount = guarded.add_batch_discount(1, DiscountType.PERCENTAGE, Decimal("20"), VALID_FROM)
        assert discount.created_by == "morgan"
        assert ledger.find_active_batch_discount(1, now=VALID_FROM) == discount

    def test_cashier_cannot_remove(self, guarded, session):
        session.login(MANAGER)
        discount = guarded.add_batch_discount(1, DiscountType.FIXED_AMOUNT, Decimal("1"), VALID_FROM)
        session.login(CASHIER)
        with pytest.raises(PermissionDeniedError):
            guarded.remove_batch_discount(discount.id)

    def test_lookup_is_open(self, guarded):
        assert guarded.find_active_batch_discount(1) is None


# =============================================================================
# DELEGATION
# =============================================================================


class TestDelegation:

    def test_reads_pass_through(self, guarded, ledger):
        assert guarded.get_item("APPLE") == ledger.get_item("APPLE")
        assert guarded.stock_level("BREAD", StockPool.SHELF) == 30

    def test_ledger_specific_helpers_pass_through(self, guarded, ledger):
        guarded.add_batch("BREAD", None, qty_on_shelf=5, batch_id=10)
        assert ledger.stock_level("BREAD", StockPool.SHELF) == 35


class TestRequiresRole:

    def test_operation_name_defaults_to_method_name(self):
        class Terminal:
            def __init__(self, session):
                self.session = session

            @requires_role(Role.ADMIN)
            def close_day(self):
                return "closed"

        session = ActorSession()
        session.login(CASHIER)
        with pytest.raises(PermissionDeniedError, match="ADMIN required to close day"):
            Terminal(session).close_day()

        session.login(ADMIN)
        assert Terminal(session).close_day() == "closed"

"""
Restock service for moving stock toward the sales floor.

Back-store to shelf moves are routine. Moves out of the main warehouse
are privileged; when the ledger is wrapped in a permission check, the
wrapper decides who may make them.
"""

import logging

from checkout.errors import InsufficientStockError, InvalidInputError
from checkout.ledger import StockLedger
from checkout.models import Reservation, StockPool

logger = logging.getLogger(__name__)


class RestockService:
    """Service for shelf and back-store replenishment."""

    def __init__(self, ledger: StockLedger):
        self.ledger = ledger

    def restock_fixed(self, item_code: str, quantity: int) -> list[Reservation]:
        """
        Move up to quantity units from the back-store to the shelf.

        Moves whatever the store holds when it holds less than requested.

        Raises:
            ItemNotFoundError: If the item does not exist
            InvalidInputError: If quantity is not positive
            InsufficientStockError: If the store is empty
        """
        self.ledger.get_item(item_code)
        if quantity <= 0:
            raise InvalidInputError(f"Restock quantity must be > 0, got {quantity}")

        store = self.ledger.stock_level(item_code, StockPool.STORE)
        if store <= 0:
            raise InsufficientStockError(item_code, quantity, 0)

        return self.ledger.transfer(item_code, min(store, quantity), StockPool.STORE, StockPool.SHELF)

    def restock_to_target(self, item_code: str, target: int) -> list[Reservation]:
        """
        Top the shelf up to target units from the back-store.

        Returns an empty list when the shelf already holds target or more.

        Raises:
            ItemNotFoundError: If the item does not exist
            InvalidInputError: If target is not positive
            InsufficientStockError: If the shelf is short and the store is empty
        """
        self.ledger.get_item(item_code)
        if target <= 0:
            raise InvalidInputError(f"Target shelf quantity must be > 0, got {target}")

        shelf = self.ledger.stock_level(item_code, StockPool.SHELF)
        if shelf >= target:
            logger.debug("Shelf for %s at %d, target %d, nothing to move", item_code, shelf, target)
            return []

        need = target - shelf
        store = self.ledger.stock_level(item_code, StockPool.STORE)
        if store <= 0:
            raise InsufficientStockError(item_code, need, 0)

        return self.ledger.transfer(item_code, min(store, need), StockPool.STORE, StockPool.SHELF)

    def backfill_from_main(self, item_code: str, quantity: int, target_pool: StockPool = StockPool.STORE) -> list[Reservation]:
        """
        Move quantity units from the main warehouse to the shelf or store.

        Raises:
            ItemNotFoundError: If the item does not exist
            InvalidInputError: If target_pool is MAIN or quantity is not positive
            InsufficientStockError: If the warehouse cannot cover quantity
            PermissionDeniedError: If the ledger is permission-checked and the
                current actor is not a manager
        """
        self.ledger.get_item(item_code)
        if target_pool == StockPool.MAIN:
            raise InvalidInputError("Backfill target must be the shelf or the store")
        if quantity <= 0:
            raise InvalidInputError(f"Backfill quantity must be > 0, got {quantity}")

        return self.ledger.transfer(item_code, quantity, StockPool.MAIN, target_pool)

"""
Stock ledger: items, batches, and batch discounts.

The transaction core only reads from the ledger while a sale is open.
Quantities change in exactly two places: commit_reservations() after a
bill is paid, and transfer() when stock is moved between pools.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from checkout.allocator import FefoAllocator, fefo_key
from checkout.errors import InsufficientStockError, InvalidInputError, ItemNotFoundError
from checkout.models import Batch, BatchDiscount, DiscountType, Item, Reservation, StockPool
from utils.timezone import now_utc, to_utc

logger = logging.getLogger(__name__)


def aggregate_reservations(reservations: Iterable[Reservation]) -> dict[tuple[int, StockPool], int]:
    """Total reserved quantity per (batch id, pool)."""
    totals: dict[tuple[int, StockPool], int] = defaultdict(int)
    for reservation in reservations:
        totals[(reservation.batch_id, reservation.pool)] += reservation.quantity
    return dict(totals)


class StockLedger(ABC):
    """Storage contract for items, batches and batch discounts."""

    @abstractmethod
    def find_item(self, item_code: str) -> Item | None:
        ...

    def get_item(self, item_code: str) -> Item:
        """Like find_item, but raises ItemNotFoundError."""
        item = self.find_item(item_code)
        if item is None:
            raise ItemNotFoundError(item_code)
        return item

    @abstractmethod
    def find_batches(self, item_code: str, pool: StockPool) -> list[Batch]:
        """Batches of an item holding a positive quantity in pool, FEFO ordered."""

    @abstractmethod
    def stock_level(self, item_code: str, pool: StockPool) -> int:
        ...

    @abstractmethod
    def commit_reservations(self, reservations: list[Reservation]) -> None:
        """
        Deduct reserved quantities from their batches.

        Every reservation is re-checked against current quantities before any
        is applied. On a shortfall nothing is deducted.

        Raises:
            InsufficientStockError: If any batch can no longer cover its reservations
        """

    @abstractmethod
    def transfer(self, item_code: str, quantity: int, source: StockPool, target: StockPool) -> list[Reservation]:
        """
        Move stock between pools, consuming source batches in FEFO order.

        Returns:
            The per-batch moves that were applied

        Raises:
            InvalidInputError: If quantity is not positive or source == target
            InsufficientStockError: If source cannot cover quantity; nothing moves
        """

    @abstractmethod
    def find_active_batch_discount(self, batch_id: int, now: datetime | None = None) -> BatchDiscount | None:
        ...

    @abstractmethod
    def add_batch_discount(
        self,
        batch_id: int,
        discount_type: DiscountType,
        value: Decimal,
        valid_from: datetime,
        valid_until: datetime | None = None,
        reason: str | None = None,
        created_by: str | None = None,
    ) -> BatchDiscount:
        ...

    @abstractmethod
    def remove_batch_discount(self, discount_id: int) -> bool:
        """Deactivate a discount. Returns False if it does not exist."""


class InMemoryStockLedger(StockLedger):
    """
    Ledger held in process memory.

    Used by tests and single-terminal setups. Callers only ever receive
    copies of batches, so quantities cannot be changed behind the ledger's back.
    """

    def __init__(self, allocator: FefoAllocator | None = None):
        self.allocator = allocator or FefoAllocator()
        self._items: dict[str, Item] = {}
        self._batches: dict[int, Batch] = {}
        self._discounts: dict[int, BatchDiscount] = {}
        self._next_batch_id = 1
        self._next_discount_id = 1

    # ========================================================================
    # Seeding
    # ========================================================================

    def add_item(self, item: Item) -> Item:
        self._items[item.code] = item
        return item

    def add_batch(
        self,
        item_code: str,
        expiry_date: date | None = None,
        qty_on_shelf: int = 0,
        qty_in_store: int = 0,
        qty_in_main: int = 0,
        batch_id: int | None = None,
    ) -> Batch:
        """Register a batch for a known item. Ids are assigned sequentially unless given."""
        if item_code not in self._items:
            raise ItemNotFoundError(item_code)

        if batch_id is None:
            batch_id = self._next_batch_id
        if batch_id in self._batches:
            raise InvalidInputError(f"Batch {batch_id} already exists")
        self._next_batch_id = max(self._next_batch_id, batch_id + 1)

        batch = Batch(
            id=batch_id,
            item_code=item_code,
            expiry_date=expiry_date,
            qty_on_shelf=qty_on_shelf,
            qty_in_store=qty_in_store,
            qty_in_main=qty_in_main,
        )
        self._batches[batch_id] = batch
        return batch.model_copy()

    def get_batch(self, batch_id: int) -> Batch | None:
        batch = self._batches.get(batch_id)
        return batch.model_copy() if batch is not None else None

    # ========================================================================
    # Reads
    # ========================================================================

    def find_item(self, item_code: str) -> Item | None:
        return self._items.get(item_code)

    def find_batches(self, item_code: str, pool: StockPool) -> list[Batch]:
        batches = [
            b.model_copy()
            for b in self._batches.values()
            if b.item_code == item_code and b.quantity_in(pool) > 0
        ]
        return sorted(batches, key=fefo_key)

    def stock_level(self, item_code: str, pool: StockPool) -> int:
        return sum(
            b.quantity_in(pool)
            for b in self._batches.values()
            if b.item_code == item_code
        )

    # ========================================================================
    # Writes
    # ========================================================================

    def commit_reservations(self, reservations: list[Reservation]) -> None:
        totals = aggregate_reservations(reservations)

        for (batch_id, pool), quantity in totals.items():
            batch = self._batches.get(batch_id)
            available = batch.quantity_in(pool) if batch is not None else 0
            if available < quantity:
                item_code = batch.item_code if batch is not None else f"batch {batch_id}"
                raise InsufficientStockError(item_code, quantity, available)

        for (batch_id, pool), quantity in totals.items():
            self._batches[batch_id].take(pool, quantity)

        logger.info("Committed %d reservation(s) across %d batch(es)", len(reservations), len(totals))

    def transfer(self, item_code: str, quantity: int, source: StockPool, target: StockPool) -> list[Reservation]:
        if source == target:
            raise InvalidInputError(f"Cannot transfer {item_code} from {source.value} to itself")

        plan = self.allocator.allocate(item_code, quantity, self._batches.values(), source)
        for move in plan:
            batch = self._batches[move.batch_id]
            batch.take(source, move.quantity)
            batch.put(target, move.quantity)

        logger.info("Moved %d x %s from %s to %s", quantity, item_code, source.value, target.value)
        return plan

    # ========================================================================
    # Batch discounts
    # ========================================================================

    def find_active_batch_discount(self, batch_id: int, now: datetime | None = None) -> BatchDiscount | None:
        """Most recently created discount on the batch that applies at now."""
        now = now or now_utc()
        applicable = [
            d for d in self._discounts.values()
            if d.batch_id == batch_id and d.applies_at(now)
        ]
        if not applicable:
            return None
        return max(applicable, key=lambda d: (d.created_at, d.id))

    def add_batch_discount(
        self,
        batch_id: int,
        discount_type: DiscountType,
        value: Decimal,
        valid_from: datetime,
        valid_until: datetime | None = None,
        reason: str | None = None,
        created_by: str | None = None,
    ) -> BatchDiscount:
        if batch_id not in self._batches:
            raise InvalidInputError(f"Batch {batch_id} does not exist")

        try:
            discount = BatchDiscount(
                id=self._next_discount_id,
                batch_id=batch_id,
                discount_type=discount_type,
                value=value,
                valid_from=to_utc(valid_from),
                valid_until=to_utc(valid_until) if valid_until is not None else None,
                reason=reason,
                created_by=created_by,
            )
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        self._discounts[discount.id] = discount
        self._next_discount_id += 1
        logger.info("Added %s discount %s on batch %d", discount.discount_type.value, discount.value, batch_id)
        return discount

    def remove_batch_discount(self, discount_id: int) -> bool:
        discount = self._discounts.get(discount_id)
        if discount is None:
            return False
        self._discounts[discount_id] = discount.model_copy(update={"is_active": False})
        logger.info("Deactivated batch discount %d", discount_id)
        return True

"""
Reservation across both sales-floor pools.

A sale normally draws only from its channel's pool (the back-store for
POS, the shelf for online). A smart pick lets the sale spill into the
other sales-floor pool with approval, and with manager approval pull the
missing units out of the main warehouse first. Warehouse moves go through
the ledger's transfer, so a permission-checked ledger refuses them for
anyone but a manager.

Reservations are still only a plan. Warehouse moves are real and happen
immediately; they stay in place even if the sale is later abandoned.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from checkout.allocator import FefoAllocator
from checkout.errors import ApprovalRequiredError, InsufficientStockError, InvalidInputError
from checkout.ledger import StockLedger
from checkout.models import Channel, Reservation, StockPool

logger = logging.getLogger(__name__)

_OTHER_POOL = {StockPool.STORE: StockPool.SHELF, StockPool.SHELF: StockPool.STORE}


@dataclass(frozen=True)
class SmartPick:
    """Outcome of a smart reservation."""

    reservations: tuple[Reservation, ...]
    restock_level: int
    # The channel's pool was emptied and had held exactly the restock level
    out_of_stock_notice: bool = False
    used_main_to_fulfill: bool = False
    backfilled_to_restock_level: bool = False

    def from_pool(self, pool: StockPool) -> tuple[Reservation, ...]:
        return tuple(r for r in self.reservations if r.pool == pool)


class ReservationService:
    """Plans reservations that may span the shelf, the store and the warehouse."""

    def __init__(self, ledger: StockLedger, allocator: FefoAllocator | None = None):
        self.ledger = ledger
        self.allocator = allocator or FefoAllocator()

    def _available(self, item_code: str, pool: StockPool, held: Mapping[int, int]) -> int:
        return sum(
            max(0, batch.quantity_in(pool) - held.get(batch.id, 0))
            for batch in self.ledger.find_batches(item_code, pool)
        )

    def reserve_smart(
        self,
        item_code: str,
        quantity: int,
        channel: Channel,
        use_other_pool: bool = False,
        backfill_from_main: bool = False,
        held: Mapping[StockPool, Mapping[int, int]] | None = None,
    ) -> SmartPick:
        """
        Reserve quantity units, channel pool first, then the other pool.

        When the other pool cannot cover the remainder, the shortfall is
        moved into it from main. With backfill_from_main, the other pool is
        also topped back up to the item's restock level from main once the
        reservation leaves it at or below that level.

        Args:
            item_code: Item to reserve
            quantity: Units requested
            channel: Sales channel; its stock pool is drawn first
            use_other_pool: Approval to draw from the other sales-floor pool
            backfill_from_main: Manager approval to move stock out of main
            held: Units per pool and batch id already reserved by the caller

        Returns:
            SmartPick with FEFO reservations summing to quantity

        Raises:
            InvalidInputError: If quantity is not positive
            ItemNotFoundError: If the item does not exist
            ApprovalRequiredError: If the needed approval was not given
            InsufficientStockError: If shelf, store and main together fall short
            PermissionDeniedError: If the ledger is permission-checked and a
                warehouse move is attempted by a non-manager
        """
        if quantity <= 0:
            raise InvalidInputError(f"Quantity must be greater than zero, got {quantity}")

        item = self.ledger.get_item(item_code)
        held = held or {}
        primary = channel.stock_pool
        secondary = _OTHER_POOL[primary]
        primary_held = held.get(primary, {})
        secondary_held = held.get(secondary, {})

        primary_before = self._available(item_code, primary, primary_held)
        primary_take = min(quantity, primary_before)
        remaining = quantity - primary_take

        used_main = False
        backfilled = False
        secondary_plan: list[Reservation] = []

        if remaining > 0:
            if not use_other_pool:
                raise ApprovalRequiredError(
                    item_code,
                    "other_pool",
                    f"Not enough {item_code} in {primary.value}. "
                    f"Approval to use {secondary.value} stock is required.",
                )

            secondary_before = self._available(item_code, secondary, secondary_held)
            shortfall = remaining - secondary_before
            if shortfall > 0:
                if not backfill_from_main:
                    raise ApprovalRequiredError(
                        item_code,
                        "main",
                        f"Not enough {item_code} in {secondary.value}. "
                        "Manager approval required to pull from main.",
                    )
                main_before = self.ledger.stock_level(item_code, StockPool.MAIN)
                if main_before < shortfall:
                    raise InsufficientStockError(item_code, quantity, primary_before + secondary_before + main_before)
                self.ledger.transfer(item_code, shortfall, StockPool.MAIN, secondary)
                used_main = True

            secondary_plan = self.allocator.allocate(
                item_code,
                remaining,
                self.ledger.find_batches(item_code, secondary),
                secondary,
                held=secondary_held,
            )

            secondary_after = self._available(item_code, secondary, secondary_held) - remaining
            if backfill_from_main and secondary_after <= item.restock_level:
                top_up = min(
                    item.restock_level - secondary_after,
                    self.ledger.stock_level(item_code, StockPool.MAIN),
                )
                if top_up > 0:
                    self.ledger.transfer(item_code, top_up, StockPool.MAIN, secondary)
                    backfilled = True
                    logger.info("Backfilled %d x %s into %s from main", top_up, item_code, secondary.value)

        primary_plan = []
        if primary_take > 0:
            primary_plan = self.allocator.allocate(
                item_code,
                primary_take,
                self.ledger.find_batches(item_code, primary),
                primary,
                held=primary_held,
            )

        logger.debug(
            "Smart pick %d x %s: %d from %s, %d from %s",
            quantity, item_code, primary_take, primary.value, remaining, secondary.value,
        )
        return SmartPick(
            reservations=tuple(primary_plan) + tuple(secondary_plan),
            restock_level=item.restock_level,
            out_of_stock_notice=primary_take == primary_before and primary_before == item.restock_level,
            used_main_to_fulfill=used_main,
            backfilled_to_restock_level=backfilled,
        )

"""
First-expire-first-out stock allocation.

Allocation only computes a plan; it never touches batch quantities. The
plan is committed against the ledger after payment succeeds, so a sale
can be priced, paid for, or abandoned without disturbing real stock.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date

from checkout.errors import InsufficientStockError, InvalidInputError
from checkout.models import Batch, Reservation, StockPool

logger = logging.getLogger(__name__)


def fefo_key(batch: Batch) -> tuple[bool, date, int]:
    """Sort key: soonest expiry first, never-expiring last, then batch id."""
    return (batch.expiry_date is None, batch.expiry_date or date.max, batch.id)


class FefoAllocator:
    """Plans reservations across an item's batches in expiry order."""

    def allocate(
        self,
        item_code: str,
        quantity: int,
        batches: Iterable[Batch],
        pool: StockPool,
        held: Mapping[int, int] | None = None,
    ) -> list[Reservation]:
        """
        Reserve `quantity` units of an item from one stock pool.

        Args:
            item_code: Item to allocate
            quantity: Units requested (must be positive)
            batches: Candidate batches; batches of other items are ignored
            pool: Pool the quantities are drawn from
            held: Units per batch id already reserved by the caller and not
                yet committed. They are treated as unavailable.

        Returns:
            Reservations in FEFO order, summing exactly to quantity

        Raises:
            InvalidInputError: If quantity is not positive
            InsufficientStockError: If the pool cannot cover quantity. No
                partial plan is returned.
        """
        if quantity <= 0:
            raise InvalidInputError(f"Quantity must be greater than zero, got {quantity}")

        held = held or {}
        candidates = sorted(
            (b for b in batches if b.item_code == item_code),
            key=fefo_key,
        )
        available = [
            (batch, max(0, batch.quantity_in(pool) - held.get(batch.id, 0)))
            for batch in candidates
        ]

        total_available = sum(qty for _, qty in available)
        if total_available < quantity:
            raise InsufficientStockError(item_code, quantity, total_available)

        plan = []
        remaining = quantity
        for batch, qty in available:
            if remaining == 0:
                break
            take = min(qty, remaining)
            if take > 0:
                plan.append(Reservation(
                    batch_id=batch.id,
                    item_code=item_code,
                    quantity=take,
                    pool=pool,
                ))
                remaining -= take

        logger.debug(
            "Allocated %d x %s from %s across %d batch(es)",
            quantity, item_code, pool.value, len(plan),
        )
        return plan

"""
Handler for RestockThresholdHit events.

When sellable stock runs low after a sale, tops the shelf up from the
back-store.
"""

import logging
from typing import Callable

from checkout.events import RestockThresholdHit

logger = logging.getLogger(__name__)


def handle_restock_threshold_hit(restock_service, shelf_target: int | None = None) -> Callable:
    """
    Factory that returns a RestockThresholdHit handler.

    Args:
        restock_service: RestockService instance
        shelf_target: Shelf quantity to top up to. Defaults to the event's threshold.

    Returns:
        Handler callable that moves back-store stock onto the shelf
    """

    def handler(event: RestockThresholdHit):
        target = shelf_target or event.threshold
        moves = restock_service.restock_to_target(event.item_code, target)
        moved = sum(m.quantity for m in moves)
        if moved:
            logger.info("Restocked %d x %s onto shelf (target %d)", moved, event.item_code, target)

    return handler

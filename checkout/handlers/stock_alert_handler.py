"""Handlers that report low and depleted stock to the log."""

import logging

from checkout.events import RestockThresholdHit, StockDepleted

logger = logging.getLogger(__name__)


def log_restock_threshold_hit(event: RestockThresholdHit):
    logger.warning(
        "Low stock for %s: %d sellable left (threshold %d)",
        event.item_code, event.remaining, event.threshold,
    )


def log_stock_depleted(event: StockDepleted):
    logger.warning("Out of sellable stock: %s", event.item_code)

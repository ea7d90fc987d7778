"""Checkout domain models."""

from checkout.models.item import Item, DEFAULT_RESTOCK_LEVEL
from checkout.models.batch import Batch, BatchDiscount, DiscountType, Reservation, StockPool
from checkout.models.payment import CardTender, CashTender, PaymentReceipt, PaymentRequest
from checkout.models.bill import Bill, BillLine, BillStatus, Channel

__all__ = [
    # Item
    "Item", "DEFAULT_RESTOCK_LEVEL",
    # Batch
    "Batch", "BatchDiscount", "DiscountType", "Reservation", "StockPool",
    # Payment
    "CardTender", "CashTender", "PaymentReceipt", "PaymentRequest",
    # Bill
    "Bill", "BillLine", "BillStatus", "Channel",
]

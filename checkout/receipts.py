"""
Receipt rendering and persistence.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from checkout.errors import ReceiptWriteError
from checkout.models import Bill
from utils.timezone import to_local

logger = logging.getLogger(__name__)

RULE = "-" * 40


def render_receipt(bill: Bill, timezone: str = "UTC") -> str:
    """
    Plain-text receipt for a bill.

    Lines appear in the order they were scanned. Card payments show only
    the masked suffix.
    """
    created = to_local(bill.created_at, timezone).strftime("%Y-%m-%d %H:%M:%S")

    out = [f"Bill No: {bill.number}", f"Date: {created}"]
    if bill.operator:
        out.append(f"User: {bill.operator}")
    out.append(f"Channel: {bill.channel.value}")

    out.append(RULE)
    for line in bill.lines:
        out.append(f"{line.item_code} {line.item_name} x{line.quantity} @ {line.unit_price} = {line.line_total}")
    out.append(RULE)

    out.append(f"Subtotal: {bill.subtotal}")
    discount = f"Discount: {bill.discount}"
    if bill.discount_code and not bill.discount.is_zero():
        discount += f" ({bill.discount_code})"
    out.append(discount)
    for note in bill.discount_notes:
        out.append(f"  {note}")
    out.append(f"Tax: {bill.tax}")
    out.append(f"Total: {bill.total}")

    paid_via = f"Paid via: {bill.payment_method or '(unpaid)'}"
    if bill.payment_method == "CARD" and bill.card_last4:
        paid_via += f" (**** {bill.card_last4})"
    out.append(paid_via)
    out.append(f"Paid: {bill.paid_amount}  Change: {bill.change_amount}")

    return "\n".join(out) + "\n"


class ReceiptWriter(ABC):
    """Durably stores a finalized bill's receipt."""

    @abstractmethod
    def write(self, bill: Bill) -> None:
        """Raises ReceiptWriteError on I/O failure."""


class TextReceiptWriter(ReceiptWriter):
    """Writes each receipt to <out_dir>/<bill number>.txt."""

    def __init__(self, out_dir: Path | str, timezone: str = "UTC"):
        self.out_dir = Path(out_dir)
        self.timezone = timezone

    def path_for(self, bill: Bill) -> Path:
        return self.out_dir / f"{bill.number}.txt"

    def write(self, bill: Bill) -> None:
        path = self.path_for(bill)
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(render_receipt(bill, self.timezone), encoding="utf-8")
        except OSError as e:
            raise ReceiptWriteError(f"Failed to write receipt for bill {bill.number}: {e}") from e
        logger.info("Receipt for bill %s written to %s", bill.number, path)

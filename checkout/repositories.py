"""
PostgreSQL-backed ledger, bill store and bill numbering.

Stock-changing operations run in a single database transaction and lock
the batch rows they touch with SELECT ... FOR UPDATE, so concurrent
terminals sharing one database cannot oversell a batch.

Tables:
    items(item_code, name, unit_price, restock_level)
    batches(id, item_code, expiry, qty_on_shelf, qty_in_store, qty_in_main)
    batch_discounts(id, batch_id, discount_type, discount_value, reason,
                    valid_from, valid_until, created_by, created_at, is_active)
    bills(bill_no, created_at, channel, user_name, subtotal, discount, tax,
          total, discount_code, payment_method, paid_amount, change_amount, card_last4)
    bill_lines(bill_no, line_no, item_code, item_name, unit_price, qty, line_total)
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from checkout.allocator import FefoAllocator
from checkout.bill_numbers import BillNumberGenerator, DEFAULT_PREFIX, format_bill_number, parse_sequence
from checkout.errors import InsufficientStockError, InvalidInputError
from checkout.ledger import StockLedger, aggregate_reservations
from checkout.models import (
    Batch, BatchDiscount, Bill, DiscountType, Item, Reservation, StockPool, DEFAULT_RESTOCK_LEVEL,
)
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_POOL_COLUMNS = {
    StockPool.SHELF: "qty_on_shelf",
    StockPool.STORE: "qty_in_store",
    StockPool.MAIN: "qty_in_main",
}

_BATCH_COLUMNS = "id, item_code, expiry, qty_on_shelf, qty_in_store, qty_in_main"

_DISCOUNT_COLUMNS = (
    "id, batch_id, discount_type, discount_value, reason, valid_from, "
    "valid_until, created_by, created_at, is_active"
)


def _batch_from_row(row: Dict[str, Any]) -> Batch:
    return Batch(
        id=row["id"],
        item_code=row["item_code"],
        expiry_date=row["expiry"],
        qty_on_shelf=row["qty_on_shelf"],
        qty_in_store=row["qty_in_store"],
        qty_in_main=row["qty_in_main"],
    )


def _discount_from_row(row: Dict[str, Any]) -> BatchDiscount:
    return BatchDiscount(
        id=row["id"],
        batch_id=row["batch_id"],
        discount_type=DiscountType(row["discount_type"]),
        value=row["discount_value"],
        reason=row["reason"],
        valid_from=row["valid_from"],
        valid_until=row["valid_until"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        is_active=row["is_active"],
    )


class PostgresStockLedger(StockLedger):
    """Stock ledger stored in PostgreSQL."""

    def __init__(
        self,
        postgres: PostgresClient,
        allocator: FefoAllocator | None = None,
        default_restock_level: int = DEFAULT_RESTOCK_LEVEL,
    ):
        self.postgres = postgres
        self.allocator = allocator or FefoAllocator()
        self.default_restock_level = default_restock_level

    def find_item(self, item_code: str) -> Item | None:
        row = self.postgres.execute_single(
            "SELECT item_code, name, unit_price, restock_level FROM items WHERE item_code = %s",
            (item_code,)
        )
        if row is None:
            return None
        return Item(
            code=row["item_code"],
            name=row["name"],
            unit_price=row["unit_price"],
            restock_level=self.default_restock_level if row["restock_level"] is None else row["restock_level"],
        )

    def find_batches(self, item_code: str, pool: StockPool) -> list[Batch]:
        column = _POOL_COLUMNS[pool]
        rows = self.postgres.execute(
            f"""
            SELECT {_BATCH_COLUMNS} FROM batches
            WHERE item_code = %s AND {column} > 0
            ORDER BY (expiry IS NULL), expiry ASC, id ASC
            """,
            (item_code,)
        )
        return [_batch_from_row(row) for row in rows]

    def stock_level(self, item_code: str, pool: StockPool) -> int:
        column = _POOL_COLUMNS[pool]
        result = self.postgres.execute_scalar(
            f"SELECT COALESCE(SUM({column}), 0) FROM batches WHERE item_code = %s",
            (item_code,)
        )
        return int(result or 0)

    def commit_reservations(self, reservations: list[Reservation]) -> None:
        totals = aggregate_reservations(reservations)
        if not totals:
            return

        batch_ids = sorted({batch_id for batch_id, _ in totals})

        with self.postgres.transaction() as cur:
            cur.execute(
                f"SELECT {_BATCH_COLUMNS} FROM batches WHERE id = ANY(%s) ORDER BY id FOR UPDATE",
                (batch_ids,)
            )
            locked = {row["id"]: _batch_from_row(row) for row in cur.fetchall()}

            for (batch_id, pool), quantity in totals.items():
                batch = locked.get(batch_id)
                available = batch.quantity_in(pool) if batch is not None else 0
                if available < quantity:
                    item_code = batch.item_code if batch is not None else f"batch {batch_id}"
                    raise InsufficientStockError(item_code, quantity, available)

            for (batch_id, pool), quantity in totals.items():
                column = _POOL_COLUMNS[pool]
                cur.execute(
                    f"UPDATE batches SET {column} = {column} - %s WHERE id = %s",
                    (quantity, batch_id)
                )

        logger.info("Committed %d reservation(s) across %d batch(es)", len(reservations), len(totals))

    def transfer(self, item_code: str, quantity: int, source: StockPool, target: StockPool) -> list[Reservation]:
        if source == target:
            raise InvalidInputError(f"Cannot transfer {item_code} from {source.value} to itself")

        source_column = _POOL_COLUMNS[source]
        target_column = _POOL_COLUMNS[target]

        with self.postgres.transaction() as cur:
            cur.execute(
                f"""
                SELECT {_BATCH_COLUMNS} FROM batches
                WHERE item_code = %s AND {source_column} > 0
                ORDER BY (expiry IS NULL), expiry ASC, id ASC
                FOR UPDATE
                """,
                (item_code,)
            )
            batches = [_batch_from_row(row) for row in cur.fetchall()]

            plan = self.allocator.allocate(item_code, quantity, batches, source)
            for move in plan:
                cur.execute(
                    f"""
                    UPDATE batches
                    SET {source_column} = {source_column} - %s,
                        {target_column} = {target_column} + %s
                    WHERE id = %s
                    """,
                    (move.quantity, move.quantity, move.batch_id)
                )

        logger.info("Moved %d x %s from %s to %s", quantity, item_code, source.value, target.value)
        return plan

    def find_active_batch_discount(self, batch_id: int, now: datetime | None = None) -> BatchDiscount | None:
        now = now or now_utc()
        row = self.postgres.execute_single(
            f"""
            SELECT {_DISCOUNT_COLUMNS} FROM batch_discounts
            WHERE batch_id = %s
              AND is_active = TRUE
              AND valid_from <= %s
              AND (valid_until IS NULL OR valid_until > %s)
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (batch_id, now, now)
        )
        return _discount_from_row(row) if row else None

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
        exists = self.postgres.execute_scalar("SELECT 1 FROM batches WHERE id = %s", (batch_id,))
        if exists is None:
            raise InvalidInputError(f"Batch {batch_id} does not exist")

        # Validate before writing; the row id is a placeholder until RETURNING.
        try:
            BatchDiscount(
                id=0,
                batch_id=batch_id,
                discount_type=discount_type,
                value=value,
                valid_from=valid_from,
                valid_until=valid_until,
            )
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        rows = self.postgres.execute_returning(
            f"""
            INSERT INTO batch_discounts
                (batch_id, discount_type, discount_value, reason, valid_from,
                 valid_until, created_by, created_at, is_active)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, TRUE)
            RETURNING {_DISCOUNT_COLUMNS}
            """,
            (batch_id, discount_type, value, reason, valid_from, valid_until, created_by, now_utc())
        )
        discount = _discount_from_row(rows[0])
        logger.info("Added %s discount %s on batch %d", discount.discount_type.value, discount.value, batch_id)
        return discount

    def remove_batch_discount(self, discount_id: int) -> bool:
        rows = self.postgres.execute_returning(
            "UPDATE batch_discounts SET is_active = FALSE WHERE id = %s RETURNING id",
            (discount_id,)
        )
        if rows:
            logger.info("Deactivated batch discount %d", discount_id)
        return bool(rows)


class BillRepository(ABC):
    """Stores completed bills."""

    @abstractmethod
    def save(self, bill: Bill) -> None:
        ...


class PostgresBillRepository(BillRepository):
    """Bills and their lines in PostgreSQL."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def save(self, bill: Bill) -> None:
        """
        Write the bill header and lines in one transaction.

        Saving the same bill number again is a no-op, so a retried
        completion does not duplicate lines.
        """
        with self.postgres.transaction() as cur:
            cur.execute(
                """
                INSERT INTO bills
                    (bill_no, created_at, channel, user_name, subtotal, discount, tax, total,
                     discount_code, payment_method, paid_amount, change_amount, card_last4)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (bill_no) DO NOTHING
                RETURNING bill_no
                """,
                (
                    bill.number,
                    bill.created_at,
                    bill.channel.value,
                    bill.operator,
                    bill.subtotal.as_decimal(),
                    bill.discount.as_decimal(),
                    bill.tax.as_decimal(),
                    bill.total.as_decimal(),
                    bill.discount_code,
                    bill.payment_method,
                    bill.paid_amount.as_decimal(),
                    bill.change_amount.as_decimal(),
                    bill.card_last4,
                )
            )
            if cur.fetchone() is None:
                logger.info("Bill %s already stored", bill.number)
                return

            for line_no, line in enumerate(bill.lines, start=1):
                cur.execute(
                    """
                    INSERT INTO bill_lines
                        (bill_no, line_no, item_code, item_name, unit_price, qty, line_total)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        bill.number,
                        line_no,
                        line.item_code,
                        line.item_name,
                        line.unit_price.as_decimal(),
                        line.quantity,
                        line.line_total.as_decimal(),
                    )
                )

        logger.info("Stored bill %s with %d line(s)", bill.number, len(bill.lines))


class PostgresBillNumberGenerator(BillNumberGenerator):
    """
    Continues the day's sequence from the highest stored bill number.

    Format: PREFIX-YYYYMMDD-XXXX.
    """

    def __init__(self, postgres: PostgresClient, prefix: str = DEFAULT_PREFIX):
        self.postgres = postgres
        self.prefix = prefix

    def next(self) -> str:
        today = now_utc().strftime("%Y%m%d")
        pattern = f"{self.prefix}-{today}-"

        result = self.postgres.execute_single(
            """
            SELECT bill_no FROM bills
            WHERE bill_no LIKE %s
            ORDER BY length(bill_no) DESC, bill_no DESC
            LIMIT 1
            """,
            (f"{pattern}%",)
        )

        sequence = 1
        if result is not None:
            last = parse_sequence(result["bill_no"])
            if last is not None:
                sequence = last + 1

        return format_bill_number(self.prefix, today, sequence)

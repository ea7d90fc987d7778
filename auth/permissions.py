"""Role checks around privileged ledger operations.

Moving stock out of the main warehouse and changing batch discounts need
an INVENTORY_MANAGER or ADMIN. Everything else a ledger does is open to
any caller, logged in or not.
"""

import functools
from datetime import datetime
from decimal import Decimal
from typing import Callable

from auth.session import ActorSession
from auth.types import Role
from checkout.ledger import StockLedger
from checkout.models import Batch, BatchDiscount, DiscountType, Item, Reservation, StockPool

MANAGER_ROLES = (Role.INVENTORY_MANAGER, Role.ADMIN)


def requires_role(*roles: Role, operation: str | None = None, when: Callable[..., bool] | None = None):
    """
    Decorator for methods of objects that carry a `session` ActorSession.

    Args:
        roles: Any one of these roles is sufficient
        operation: Name used in the PermissionDeniedError message
        when: Optional predicate over the call's arguments; the check only
            runs when it returns True
    """

    def decorator(method):
        name = operation or method.__name__.replace("_", " ")

        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            if when is None or when(*args, **kwargs):
                self.session.require_role(*roles, operation=name)
            return method(self, *args, **kwargs)

        return wrapper

    return decorator


def _from_main(item_code: str, quantity: int, source: StockPool, target: StockPool) -> bool:
    return source == StockPool.MAIN


class PermissionCheckedStockLedger(StockLedger):
    """Wraps a ledger and checks the session's role before privileged calls."""

    def __init__(self, inner: StockLedger, session: ActorSession):
        self.inner = inner
        self.session = session

    def __getattr__(self, name):
        # Seeding and other ledger-specific helpers pass straight through.
        if name == "inner":
            raise AttributeError(name)
        return getattr(self.inner, name)

    def find_item(self, item_code: str) -> Item | None:
        return self.inner.find_item(item_code)

    def find_batches(self, item_code: str, pool: StockPool) -> list[Batch]:
        return self.inner.find_batches(item_code, pool)

    def stock_level(self, item_code: str, pool: StockPool) -> int:
        return self.inner.stock_level(item_code, pool)

    def commit_reservations(self, reservations: list[Reservation]) -> None:
        self.inner.commit_reservations(reservations)

    @requires_role(*MANAGER_ROLES, operation="transfer stock out of main", when=_from_main)
    def transfer(self, item_code: str, quantity: int, source: StockPool, target: StockPool) -> list[Reservation]:
        return self.inner.transfer(item_code, quantity, source, target)

    def find_active_batch_discount(self, batch_id: int, now: datetime | None = None) -> BatchDiscount | None:
        return self.inner.find_active_batch_discount(batch_id, now)

    @requires_role(*MANAGER_ROLES, operation="add batch discount")
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
        if created_by is None and self.session.current is not None:
            created_by = self.session.current.username
        return self.inner.add_batch_discount(
            batch_id, discount_type, value, valid_from,
            valid_until=valid_until, reason=reason, created_by=created_by,
        )

    @requires_role(*MANAGER_ROLES, operation="remove batch discount")
    def remove_batch_discount(self, discount_id: int) -> bool:
        return self.inner.remove_batch_discount(discount_id)

"""Typed exceptions for checkout failures."""


class CheckoutError(Exception):
    """Base class for all transaction-core errors."""


class InvalidInputError(CheckoutError, ValueError):
    """
    Malformed caller input.

    Invalid percentage range, bad card suffix, non-positive or oversized
    cash tender, bad item code or quantity. Never retried automatically.
    """


class ItemNotFoundError(CheckoutError, LookupError):
    """No item with the given code exists in the ledger."""

    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(f"Item {item_code} not found")


class InsufficientStockError(CheckoutError):
    """
    Not enough stock to satisfy a request.

    Raised by allocation (nothing is reserved) and by commit-time
    re-validation (nothing is deducted).
    """

    def __init__(self, item_code: str, requested: int, available: int):
        self.item_code = item_code
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_code}: requested {requested}, available {available}"
        )


class ApprovalRequiredError(CheckoutError):
    """
    The sale's own pool is short and covering the rest needs an approval
    the caller did not give. Nothing is reserved and no stock moves.

    approval is "other_pool" (sell from the other sales-floor pool) or
    "main" (pull from the main warehouse).
    """

    def __init__(self, item_code: str, approval: str, message: str):
        self.item_code = item_code
        self.approval = approval
        super().__init__(message)


class PaymentError(CheckoutError):
    """Tender rejected by a payment strategy. The bill stays unpaid."""


class InsufficientPaymentError(PaymentError):
    """Cash tendered is less than the bill total."""


class PaymentMismatchError(PaymentError):
    """Card amount differs from the bill total."""


class UnsupportedPaymentMethodError(PaymentError):
    """No payment strategy is registered for the requested method."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unsupported payment method: {method}")


class IllegalTransactionStateError(CheckoutError):
    """Operation attempted in a lifecycle state that forbids it."""

    def __init__(self, operation: str, state: str, detail: str | None = None):
        self.operation = operation
        self.state = state
        message = f"Cannot {operation} in state {state}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ReceiptWriteError(CheckoutError):
    """Receipt could not be persisted."""

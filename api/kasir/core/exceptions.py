from typing import Any


class KasirError(Exception):
    """Base class for every error the core reports to its callers."""

    status_code = 500
    retryable = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class CheckoutError(KasirError):
    """A cart was rejected; nothing was written."""

    status_code = 400


class EmptyCart(CheckoutError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")


class InvalidQuantity(CheckoutError):
    def __init__(self, product_id: int, quantity: Any) -> None:
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(
            f"Quantity for product {product_id} must be a positive integer, got {quantity!r}",
            details={"product_id": product_id, "quantity": quantity},
        )


class ProductNotFound(CheckoutError):
    status_code = 404

    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})


class InsufficientStock(CheckoutError):
    def __init__(self, product_id: int, available: int, requested: int, product_name: str | None = None) -> None:
        self.product_id = product_id
        self.available = available
        self.requested = requested
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, requested: {requested}",
            details={"product_id": product_id, "available": available, "requested": requested},
        )


class TransactionNotFound(KasirError):
    status_code = 404

    def __init__(self, transaction_id: int) -> None:
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id}
        )


class InvalidReportWindow(KasirError):
    status_code = 400


class StoreError(KasirError):
    """The data store failed; the whole operation may be retried."""

    status_code = 500
    retryable = True


class LockTimeout(StoreError):
    status_code = 503

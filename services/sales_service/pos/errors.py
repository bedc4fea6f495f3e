"""Errors raised by the point-of-sale cart and checkout."""

from dataclasses import dataclass
from typing import Any, Optional


class CartError(Exception):
    """Base class for cart errors. The cart is unchanged when one is raised."""


class CartItemNotFoundError(CartError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is not in the cart")


class QuantityOutOfRangeError(CartError):
    """Requested quantity falls outside ``[1, available_stock]``."""

    def __init__(self, product_id, requested: int, available_stock: int):
        self.product_id = product_id
        self.requested = requested
        self.available_stock = available_stock
        if available_stock < 1:
            message = "Product is out of stock (available_stock: 0)"
        elif requested < 1:
            message = "Quantity cannot be less than 1; remove the item instead"
        else:
            message = (
                f"Only {available_stock} bag(s) available "
                f"(available_stock: {available_stock})"
            )
        super().__init__(message)


@dataclass(frozen=True)
class StockShortfall:
    product_id: str
    requested: int
    available: int
    product_name: Optional[str] = None


class CheckoutError(Exception):
    """Checkout failed. The cart is left intact.

    ``customer`` holds the resolved customer when the failure happened after
    the customer step, so a retry can reuse it.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        customer: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.customer = customer
        super().__init__(message)


class CheckoutValidationError(CheckoutError):
    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


class CheckoutNotAllowedError(CheckoutError):
    pass


class CustomerConflictError(CheckoutError):
    pass


class InsufficientStockError(CheckoutError):
    def __init__(
        self,
        items: list[StockShortfall],
        *,
        message: str = "Insufficient stock for some items",
        customer: Optional[dict[str, Any]] = None,
    ):
        self.items = items
        super().__init__(message, status_code=400, customer=customer)


class OrderNumberConflictError(CheckoutError):
    """The generated order number was taken; retrying generates a new one."""

    retryable = True

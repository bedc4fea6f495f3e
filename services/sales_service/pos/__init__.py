"""Point-of-sale client: cart and checkout against the sales service."""

from services.sales_service.pos.api_client import ApiError, SalesApiClient
from services.sales_service.pos.cart import Cart, CartItem, StockedProduct
from services.sales_service.pos.checkout import (
    CheckoutDetails,
    CheckoutOrchestrator,
    CheckoutResult,
    generate_order_number,
)
from services.sales_service.pos.errors import (
    CartError,
    CartItemNotFoundError,
    CheckoutError,
    CheckoutNotAllowedError,
    CheckoutValidationError,
    CustomerConflictError,
    InsufficientStockError,
    OrderNumberConflictError,
    QuantityOutOfRangeError,
    StockShortfall,
)

__all__ = [
    "ApiError",
    "Cart",
    "CartError",
    "CartItem",
    "CartItemNotFoundError",
    "CheckoutDetails",
    "CheckoutError",
    "CheckoutNotAllowedError",
    "CheckoutOrchestrator",
    "CheckoutResult",
    "CheckoutValidationError",
    "CustomerConflictError",
    "InsufficientStockError",
    "OrderNumberConflictError",
    "QuantityOutOfRangeError",
    "SalesApiClient",
    "StockShortfall",
    "StockedProduct",
    "generate_order_number",
]

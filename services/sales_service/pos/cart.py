"""In-memory cart a sales person fills before checkout.

Quantities are bounded by the stock snapshot taken when the product list
was fetched. Out-of-range changes raise and leave the cart as it was.
"""

import uuid
from decimal import Decimal
from typing import Iterator, Optional

from libs.common.currency import sum_money, to_money
from pydantic import BaseModel, Field
from services.sales_service.pos.errors import (
    CartItemNotFoundError,
    QuantityOutOfRangeError,
)


class StockedProduct(BaseModel):
    """A catalog product together with the shop's stock at fetch time."""

    id: uuid.UUID
    name: str
    variant: Optional[str] = None
    brand: Optional[str] = None
    size: int = Field(..., gt=0)
    image_url: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    available_stock: int = Field(..., ge=0)


class CartItem(StockedProduct):
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


class Cart:
    """Ordered collection of cart items keyed by product id."""

    def __init__(self):
        self._items: dict[uuid.UUID, CartItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(list(self._items.values()))

    def __contains__(self, product_id) -> bool:
        return product_id in self._items

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def total_items(self) -> int:
        """Total bag count."""
        return sum(item.quantity for item in self._items.values())

    @property
    def total_price(self) -> Decimal:
        """Client-side preview; the server computes the real total."""
        return sum_money(item.line_total for item in self._items.values())

    def get(self, product_id: uuid.UUID) -> CartItem:
        try:
            return self._items[product_id]
        except KeyError:
            raise CartItemNotFoundError(product_id) from None

    def add_item(self, product: StockedProduct) -> CartItem:
        """Add ``product`` at quantity 1. Adding it again is a no-op."""
        existing = self._items.get(product.id)
        if existing is not None:
            return existing
        if product.available_stock < 1:
            raise QuantityOutOfRangeError(product.id, 1, product.available_stock)

        item = CartItem(**product.model_dump(), quantity=1)
        self._items[product.id] = item
        return item

    def set_quantity(self, product_id: uuid.UUID, quantity: int) -> CartItem:
        item = self.get(product_id)
        if quantity < 1 or quantity > item.available_stock:
            raise QuantityOutOfRangeError(product_id, quantity, item.available_stock)
        item.quantity = quantity
        return item

    def update_quantity(self, product_id: uuid.UUID, delta: int) -> CartItem:
        """Change a quantity by ``delta``; dropping below 1 is an error, not a removal."""
        item = self.get(product_id)
        return self.set_quantity(product_id, item.quantity + delta)

    def remove_item(self, product_id: uuid.UUID) -> None:
        self.get(product_id)
        del self._items[product_id]

    def clear(self) -> None:
        self._items.clear()

    def quantities(self) -> dict[uuid.UUID, int]:
        return {pid: item.quantity for pid, item in self._items.items()}

"""Checkout orchestration: cart + customer details -> persisted sales order.

Checkout is two server steps, not one transaction:

1. resolve the customer (lookup, else create);
2. submit the order.

If step 2 fails the customer from step 1 still exists. The raised error
carries it as ``customer`` so a retry can skip straight to step 2. The cart
is cleared only after the server confirms the order.
"""

import random
import re
import string
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional, Union

import httpx
from libs.auth.models import AuthUser
from libs.common.currency import to_money
from libs.common.datetime_utils import utc_now_ms
from libs.common.logging import get_logger
from pydantic import BaseModel, ValidationError, field_validator
from services.sales_service.pos.api_client import ApiError, SalesApiClient
from services.sales_service.pos.cart import Cart
from services.sales_service.pos.errors import (
    CheckoutError,
    CheckoutNotAllowedError,
    CheckoutValidationError,
    CustomerConflictError,
    InsufficientStockError,
    OrderNumberConflictError,
    StockShortfall,
)

logger = get_logger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
_BASE36 = string.digits + string.ascii_lowercase


def generate_order_number() -> str:
    """``ORD-<ms timestamp>-<9 base36 chars>``. Uniqueness is enforced by the server."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"ORD-{utc_now_ms()}-{suffix}"


class CheckoutDetails(BaseModel):
    """Customer and payment details entered at checkout."""

    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    customer_company: Optional[str] = None
    payment_method: Literal["cash", "pos", "transfer"]
    is_delivery: bool = False
    delivery_address: Optional[str] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("customer_phone")
    @classmethod
    def _phone_format(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Phone number is required")
        if not PHONE_PATTERN.match(value):
            raise ValueError("Invalid phone number format")
        return value

    @field_validator("customer_email")
    @classmethod
    def _email_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value.lower()

    @field_validator(
        "customer_address", "customer_company", "delivery_address", "notes"
    )
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


@dataclass
class CheckoutResult:
    order_number: str
    order: dict[str, Any]
    customer: dict[str, Any]
    preview_total: Decimal
    total_amount: Decimal


class CheckoutOrchestrator:
    def __init__(
        self,
        cart: Cart,
        api: SalesApiClient,
        user: AuthUser,
        shop_id: Optional[Union[str, uuid.UUID]] = None,
    ):
        self.cart = cart
        self.api = api
        self.user = user
        self.shop_id = shop_id or user.shop_id

    @property
    def can_checkout(self) -> bool:
        return (
            not self.cart.is_empty
            and bool(self.shop_id)
            and self.user.is_sales_person
        )

    def validate(self, details: Union[CheckoutDetails, dict]) -> CheckoutDetails:
        if isinstance(details, CheckoutDetails):
            return details
        try:
            return CheckoutDetails.model_validate(details)
        except ValidationError as exc:
            errors = {
                ".".join(str(part) for part in err["loc"]) or "details": err["msg"]
                for err in exc.errors()
            }
            raise CheckoutValidationError(errors) from None

    def _ensure_allowed(self) -> None:
        if self.cart.is_empty:
            raise CheckoutNotAllowedError("Cart is empty")
        if not self.shop_id:
            raise CheckoutNotAllowedError("No shop selected")
        if not self.user.is_sales_person:
            raise CheckoutNotAllowedError("Only sales personnel can create orders")

    async def resolve_customer(self, details: CheckoutDetails) -> dict[str, Any]:
        """Find the customer by phone/email, creating them if unknown."""
        try:
            return await self.api.lookup_customer(
                phone=details.customer_phone, email=details.customer_email
            )
        except ApiError as exc:
            if exc.status_code == 409:
                raise CustomerConflictError(exc.message, status_code=409) from exc
            if exc.status_code != 404:
                raise CheckoutError(exc.message, status_code=exc.status_code) from exc

        payload = {
            "name": details.customer_name,
            "phone": details.customer_phone,
            "email": details.customer_email,
            "address": details.customer_address,
            "company": details.customer_company,
            "preferred_payment_method": details.payment_method,
        }
        if details.is_delivery and details.delivery_address:
            payload["preferred_delivery_address"] = details.delivery_address
        try:
            customer = await self.api.create_customer(payload)
        except ApiError as exc:
            if exc.status_code == 409:
                raise CustomerConflictError(exc.message, status_code=409) from exc
            raise CheckoutError(exc.message, status_code=exc.status_code) from exc

        logger.info("Created customer %s at checkout", customer["id"])
        return customer

    async def preview_total(self, is_delivery: bool) -> Decimal:
        """Items plus per-bag delivery surcharges, as the server will compute them."""
        total = self.cart.total_price
        if not is_delivery:
            return total
        rates = await self.api.get_delivery_settings()
        per_bag = sum(
            to_money(rates[field])
            for field in ("onloading_cost", "delivery_cost", "offloading_cost")
        )
        return to_money(total + to_money(per_bag * self.cart.total_items))

    def _order_payload(
        self, details: CheckoutDetails, order_number: str, preview: Decimal
    ) -> dict[str, Any]:
        return {
            "order_number": order_number,
            "customer_id": None,
            "shop_id": str(self.shop_id),
            "items": [
                {
                    "product_id": str(item.id),
                    "quantity": item.quantity,
                    "unit_price": str(item.price),
                }
                for item in self.cart
            ],
            "payment_method": details.payment_method,
            "is_delivery": details.is_delivery,
            "delivery_address": details.delivery_address,
            "delivery_date": (
                details.delivery_date.isoformat() if details.delivery_date else None
            ),
            "notes": details.notes,
            "total_amount": str(preview),
        }

    @staticmethod
    def _order_error(exc: ApiError, customer: dict[str, Any]) -> CheckoutError:
        shortfalls = exc.body.get("insufficient_stock_items")
        if exc.status_code == 400 and shortfalls:
            return InsufficientStockError(
                [
                    StockShortfall(
                        product_id=str(entry["product_id"]),
                        requested=int(entry["requested"]),
                        available=int(entry["available"]),
                        product_name=entry.get("product_name"),
                    )
                    for entry in shortfalls
                ],
                message=exc.message,
                customer=customer,
            )
        if exc.status_code == 409:
            return OrderNumberConflictError(
                exc.message, status_code=409, customer=customer
            )
        return CheckoutError(exc.message, status_code=exc.status_code, customer=customer)

    async def process_checkout(
        self,
        details: Union[CheckoutDetails, dict],
        *,
        customer: Optional[dict[str, Any]] = None,
    ) -> CheckoutResult:
        """Turn the cart into a sales order.

        Pass ``customer`` from a previous failure's ``error.customer`` to skip
        the customer step on retry. Cancelling the awaiting task only stops
        waiting; the cart is untouched.
        """
        details = self.validate(details)
        self._ensure_allowed()

        try:
            if customer is None:
                customer = await self.resolve_customer(details)

            preview = await self.preview_total(details.is_delivery)
            order_number = generate_order_number()
            payload = self._order_payload(details, order_number, preview)
            payload["customer_id"] = str(customer["id"])

            order = await self.api.create_sales_order(payload)
        except ApiError as exc:
            raise self._order_error(exc, customer) from exc
        except httpx.HTTPError as exc:
            raise CheckoutError(
                f"Could not reach the sales service: {exc}", customer=customer
            ) from exc

        self.cart.clear()
        total_amount = to_money(order["total_amount"])
        if total_amount != preview:
            logger.info(
                "Order %s: preview %s, server total %s",
                order_number,
                preview,
                total_amount,
            )
        return CheckoutResult(
            order_number=order["order_number"],
            order=order,
            customer=customer,
            preview_total=preview,
            total_amount=total_amount,
        )

"""Unit tests for checkout orchestration against a fake sales API."""

import asyncio
import re
import uuid
from decimal import Decimal

import pytest
from services.sales_service.pos import (
    ApiError,
    Cart,
    CheckoutDetails,
    CheckoutError,
    CheckoutNotAllowedError,
    CheckoutOrchestrator,
    CheckoutValidationError,
    CustomerConflictError,
    InsufficientStockError,
    OrderNumberConflictError,
    StockedProduct,
    generate_order_number,
)
from tests.conftest import make_admin_user, make_sales_user

SHOP_ID = str(uuid.uuid4())


class FakeSalesApi:
    """In-memory stand-in for ``SalesApiClient``."""

    def __init__(self, *, customer=None, rates=None, order_error=None):
        self.customer = customer
        self.rates = rates or {
            "onloading_cost": "0.00",
            "delivery_cost": "0.00",
            "offloading_cost": "0.00",
        }
        self.order_error = order_error
        self.created_customers = []
        self.orders = []

    async def lookup_customer(self, *, phone=None, email=None):
        if self.customer is None:
            raise ApiError(404, {"success": False, "message": "Customer not found"})
        return self.customer

    async def create_customer(self, payload):
        customer = {"id": str(uuid.uuid4()), **payload}
        self.created_customers.append(customer)
        return customer

    async def get_delivery_settings(self):
        return self.rates

    async def create_sales_order(self, payload):
        self.orders.append(payload)
        if self.order_error is not None:
            raise self.order_error
        items_total = sum(
            Decimal(item["unit_price"]) * item["quantity"] for item in payload["items"]
        )
        return {
            "id": str(uuid.uuid4()),
            "order_number": payload["order_number"],
            "total_amount": str(items_total),
        }


def _cart(quantity=3, stock=10) -> Cart:
    cart = Cart()
    product = StockedProduct(
        id=uuid.uuid4(),
        name="Dangote Cement",
        size=50,
        price=Decimal("5000"),
        available_stock=stock,
    )
    cart.add_item(product)
    cart.set_quantity(product.id, quantity)
    return cart


DETAILS = {
    "customer_name": "Ada Obi",
    "customer_phone": "+234 803 000 0001",
    "payment_method": "cash",
}


@pytest.mark.unit
def test_generate_order_number_format():
    number = generate_order_number()
    assert re.fullmatch(r"ORD-\d{13}-[0-9a-z]{9}", number)
    assert number != generate_order_number()


@pytest.mark.unit
def test_validate_collects_field_errors():
    orchestrator = CheckoutOrchestrator(
        _cart(), FakeSalesApi(), make_sales_user(shop_id=SHOP_ID)
    )

    with pytest.raises(CheckoutValidationError) as exc_info:
        orchestrator.validate(
            {
                "customer_name": "  ",
                "customer_phone": "call me",
                "customer_email": "not-an-email",
                "payment_method": "cash",
            }
        )

    errors = exc_info.value.errors
    assert set(errors) == {"customer_name", "customer_phone", "customer_email"}


@pytest.mark.unit
def test_blank_email_is_treated_as_missing():
    details = CheckoutDetails(**DETAILS, customer_email="  ")
    assert details.customer_email is None


@pytest.mark.unit
def test_can_checkout_requires_items_shop_and_sales_role():
    sales = make_sales_user(shop_id=SHOP_ID)

    assert CheckoutOrchestrator(_cart(), FakeSalesApi(), sales).can_checkout
    assert not CheckoutOrchestrator(Cart(), FakeSalesApi(), sales).can_checkout
    assert not CheckoutOrchestrator(
        _cart(), FakeSalesApi(), make_sales_user()
    ).can_checkout
    assert not CheckoutOrchestrator(
        _cart(), FakeSalesApi(), make_admin_user(), shop_id=SHOP_ID
    ).can_checkout


@pytest.mark.asyncio
@pytest.mark.unit
async def test_admin_checkout_is_refused_before_any_request():
    api = FakeSalesApi()
    orchestrator = CheckoutOrchestrator(
        _cart(), api, make_admin_user(), shop_id=SHOP_ID
    )

    with pytest.raises(CheckoutNotAllowedError):
        await orchestrator.process_checkout(DETAILS)

    assert api.created_customers == []
    assert api.orders == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_successful_checkout_creates_customer_and_clears_cart():
    api = FakeSalesApi()
    cart = _cart(quantity=3)
    orchestrator = CheckoutOrchestrator(cart, api, make_sales_user(shop_id=SHOP_ID))

    result = await orchestrator.process_checkout(DETAILS)

    assert cart.is_empty
    assert len(api.created_customers) == 1
    assert result.customer["phone"] == "+234 803 000 0001"
    assert result.preview_total == Decimal("15000.00")
    assert result.total_amount == Decimal("15000.00")

    payload = api.orders[0]
    assert payload["shop_id"] == SHOP_ID
    assert payload["customer_id"] == result.customer["id"]
    assert payload["items"][0]["quantity"] == 3
    assert payload["order_number"].startswith("ORD-")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_existing_customer_is_reused():
    existing = {"id": str(uuid.uuid4()), "name": "Ada Obi"}
    api = FakeSalesApi(customer=existing)
    orchestrator = CheckoutOrchestrator(
        _cart(), api, make_sales_user(shop_id=SHOP_ID)
    )

    result = await orchestrator.process_checkout(DETAILS)

    assert api.created_customers == []
    assert result.customer == existing


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivery_preview_adds_per_bag_rates():
    api = FakeSalesApi(
        rates={
            "onloading_cost": "100.00",
            "delivery_cost": "300.00",
            "offloading_cost": "100.00",
        }
    )
    orchestrator = CheckoutOrchestrator(
        _cart(quantity=4), api, make_sales_user(shop_id=SHOP_ID)
    )

    assert await orchestrator.preview_total(True) == Decimal("22000.00")
    assert await orchestrator.preview_total(False) == Decimal("20000.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stock_shortfall_keeps_cart_and_reports_customer():
    shortfall = ApiError(
        400,
        {
            "success": False,
            "message": "Insufficient stock for some items",
            "insufficient_stock_items": [
                {
                    "product_id": str(uuid.uuid4()),
                    "product_name": "Dangote Cement 3X",
                    "requested": 3,
                    "available": 1,
                }
            ],
        },
    )
    api = FakeSalesApi(order_error=shortfall)
    cart = _cart(quantity=3)
    orchestrator = CheckoutOrchestrator(cart, api, make_sales_user(shop_id=SHOP_ID))

    with pytest.raises(InsufficientStockError) as exc_info:
        await orchestrator.process_checkout(DETAILS)

    error = exc_info.value
    assert error.items[0].requested == 3
    assert error.items[0].available == 1
    assert error.customer["id"] == api.created_customers[0]["id"]
    assert cart.total_items == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_retry_with_customer_skips_customer_step():
    conflict = ApiError(409, {"success": False, "message": "Duplicate order number"})
    api = FakeSalesApi(order_error=conflict)
    cart = _cart()
    orchestrator = CheckoutOrchestrator(cart, api, make_sales_user(shop_id=SHOP_ID))

    with pytest.raises(OrderNumberConflictError) as exc_info:
        await orchestrator.process_checkout(DETAILS)
    assert exc_info.value.retryable

    api.order_error = None
    result = await orchestrator.process_checkout(
        DETAILS, customer=exc_info.value.customer
    )

    assert len(api.created_customers) == 1
    assert result.customer == exc_info.value.customer
    assert api.orders[0]["order_number"] != api.orders[1]["order_number"]
    assert cart.is_empty


@pytest.mark.asyncio
@pytest.mark.unit
async def test_customer_identity_conflict_stops_checkout():
    class ConflictApi(FakeSalesApi):
        async def lookup_customer(self, *, phone=None, email=None):
            raise ApiError(
                409,
                {
                    "success": False,
                    "message": "Phone and email belong to different customers",
                },
            )

    api = ConflictApi()
    orchestrator = CheckoutOrchestrator(
        _cart(), api, make_sales_user(shop_id=SHOP_ID)
    )

    with pytest.raises(CustomerConflictError):
        await orchestrator.process_checkout(
            {**DETAILS, "customer_email": "ada@example.com"}
        )

    assert api.orders == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unexpected_server_error_is_a_checkout_error():
    api = FakeSalesApi(
        order_error=ApiError(500, {"success": False, "message": "Boom"})
    )
    cart = _cart()
    orchestrator = CheckoutOrchestrator(cart, api, make_sales_user(shop_id=SHOP_ID))

    with pytest.raises(CheckoutError) as exc_info:
        await orchestrator.process_checkout(DETAILS)

    assert exc_info.value.status_code == 500
    assert not cart.is_empty


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancelled_checkout_leaves_cart_intact():
    submitted = asyncio.Event()

    class HangingApi(FakeSalesApi):
        async def create_sales_order(self, payload):
            submitted.set()
            await asyncio.Event().wait()

    cart = _cart(quantity=2)
    orchestrator = CheckoutOrchestrator(
        cart, HangingApi(), make_sales_user(shop_id=SHOP_ID)
    )

    task = asyncio.create_task(orchestrator.process_checkout(DETAILS))
    await submitted.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cart.total_items == 2

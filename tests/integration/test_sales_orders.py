"""Integration tests for the sales order endpoints."""

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from services.sales_service.app.main import app
from services.sales_service.models import InventoryMovement, SalesOrder
from sqlalchemy import func, select
from tests.conftest import make_admin_user, make_sales_user, override_auth


def _payload(shop, customer, lines, **overrides) -> dict:
    payload = {
        "customer_id": str(customer.id),
        "shop_id": str(shop.id),
        "items": [
            {"product_id": str(product.id), "quantity": quantity}
            for product, quantity in lines
        ],
        "payment_method": "cash",
    }
    payload.update(overrides)
    return payload


async def _create_order(client, shop, customer, lines, **overrides) -> dict:
    response = await client.post(
        "/sales-orders", json=_payload(shop, customer, lines, **overrides)
    )
    assert response.status_code == 201, response.text
    return response.json()["order"]


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_sales_order(client, shop, products, inventory, customer):
    """POST /sales-orders — prices from catalog, stock deducted."""
    dangote, _ = products

    response = await client.post(
        "/sales-orders",
        json=_payload(shop, customer, [(dangote, 3)], order_number="ORD-TEST-1"),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Sales order created successfully and inventory updated"
    order = data["order"]
    assert order["order_number"] == "ORD-TEST-1"
    assert order["status"] == "Not Collected"
    assert Decimal(order["total_amount"]) == Decimal("15000")
    assert order["items"][0]["quantity"] == 3
    assert order["items"][0]["remaining_quantity"] == 3
    assert order["customer"]["id"] == str(customer.id)
    assert order["shop"]["name"] == "Ikeja Depot"
    assert inventory[dangote.id].quantity == 7


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_with_insufficient_stock_lists_every_short_item(
    client, db_session, shop, products, inventory, customer
):
    """POST /sales-orders — 400 naming all short lines; nothing persisted."""
    dangote, bua = products

    response = await client.post(
        "/sales-orders", json=_payload(shop, customer, [(dangote, 11), (bua, 15)])
    )

    assert response.status_code == 400, response.text
    data = response.json()
    assert data["success"] is False
    assert data["message"] == "Insufficient stock for some items"
    short = {item["product_id"]: item for item in data["insufficient_stock_items"]}
    assert short[str(dangote.id)]["requested"] == 11
    assert short[str(dangote.id)]["available"] == 10
    assert short[str(bua.id)]["requested"] == 15

    assert await db_session.scalar(select(func.count(SalesOrder.id))) == 0
    assert await db_session.scalar(select(func.count(InventoryMovement.id))) == 0
    assert inventory[dangote.id].quantity == 10


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_cannot_create_orders(client, shop, products, inventory, customer):
    """POST /sales-orders — admins are refused."""
    with override_auth(app, make_admin_user()):
        response = await client.post(
            "/sales-orders", json=_payload(shop, customer, [(products[0], 1)])
        )

    assert response.status_code == 403
    assert response.json()["message"] == "Only sales personnel can create orders"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_validation_errors_are_400(client, shop, products, customer):
    """POST /sales-orders — empty items and non-positive quantity are rejected."""
    response = await client.post(
        "/sales-orders", json=_payload(shop, customer, [], payment_method="cash")
    )
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = await client.post(
        "/sales-orders", json=_payload(shop, customer, [(products[0], 0)])
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_with_unknown_customer_is_404(client, shop, products, inventory):
    """POST /sales-orders — customer must exist."""
    payload = _payload(shop, SimpleNamespace(id=uuid.uuid4()), [(products[0], 1)])

    response = await client.post("/sales-orders", json=payload)

    assert response.status_code == 404
    assert response.json()["message"] == "Customer not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_duplicate_order_number_is_409(client, shop, products, inventory, customer):
    """POST /sales-orders — reusing an order number conflicts."""
    await _create_order(client, shop, customer, [(products[0], 1)], order_number="DUP-1")

    response = await client.post(
        "/sales-orders",
        json=_payload(shop, customer, [(products[0], 1)], order_number="DUP-1"),
    )

    assert response.status_code == 409
    assert "Duplicate order number" in response.json()["message"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delivery_charges_follow_settings(
    client, shop, products, inventory, customer
):
    """PUT /settings then POST /sales-orders — per-bag rates land on the order."""
    with override_auth(app, make_admin_user()):
        settings_resp = await client.put(
            "/settings",
            json={"onloading_cost": 100, "delivery_cost": 400, "offloading_cost": 100},
        )
    assert settings_resp.status_code == 200, settings_resp.text

    order = await _create_order(
        client,
        shop,
        customer,
        [(products[0], 2)],
        is_delivery=True,
        delivery_address="14 Broad Street, Lagos",
    )

    assert Decimal(order["delivery_cost"]) == Decimal("800")
    assert Decimal(order["onloading_cost"]) == Decimal("200")
    assert Decimal(order["total_amount"]) == Decimal("11200")


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_partial_then_full_collection(client, shop, products, inventory, customer):
    """PUT partial-collection keeps status; PUT status Collected finishes."""
    dangote, _ = products
    order = await _create_order(client, shop, customer, [(dangote, 3)])

    response = await client.put(
        f"/sales-orders/{order['id']}/partial-collection",
        json={
            "collections": [{"product_id": str(dangote.id), "quantity_collected": 2}],
            "expected_version": order["version"],
        },
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["all_items_collected"] is False
    assert data["order"]["status"] == "Not Collected"
    assert data["order"]["items"][0]["collected_quantity"] == 2

    response = await client.put(
        f"/sales-orders/{order['id']}/status",
        json={"status": "Collected", "expected_version": data["order"]["version"]},
    )
    assert response.status_code == 200, response.text
    collected = response.json()["order"]
    assert collected["status"] == "Collected"
    assert collected["collected_date"] is not None
    assert collected["items"][0]["collected_quantity"] == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_partial_collection_for_product_not_on_order(
    client, shop, products, inventory, customer
):
    """PUT partial-collection — unknown product is 400."""
    dangote, bua = products
    order = await _create_order(client, shop, customer, [(dangote, 3)])

    response = await client.put(
        f"/sales-orders/{order['id']}/partial-collection",
        json={"collections": [{"product_id": str(bua.id), "quantity_collected": 1}]},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stale_version_is_409(client, shop, products, inventory, customer):
    """PUT status — expected_version behind the stored one conflicts."""
    order = await _create_order(client, shop, customer, [(products[0], 3)])
    await client.put(
        f"/sales-orders/{order['id']}/partial-collection",
        json={
            "collections": [
                {"product_id": str(products[0].id), "quantity_collected": 1}
            ]
        },
    )

    response = await client.put(
        f"/sales-orders/{order['id']}/status",
        json={"status": "Collected", "expected_version": order["version"]},
    )

    assert response.status_code == 409
    data = response.json()
    assert data["current_version"] == order["version"] + 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_not_collected_summary(client, shop, products, inventory, customer):
    """GET /sales-orders/not-collected — remaining bags and value."""
    dangote, bua = products
    first = await _create_order(client, shop, customer, [(dangote, 3)])
    await _create_order(client, shop, customer, [(bua, 2)])
    await client.put(
        f"/sales-orders/{first['id']}/partial-collection",
        json={"collections": [{"product_id": str(dangote.id), "quantity_collected": 1}]},
    )

    response = await client.get("/sales-orders/not-collected")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total_count"] == 2
    assert data["total_bags"] == 4
    assert Decimal(data["total_value"]) == Decimal("23000")


# ---------------------------------------------------------------------------
# Corrections
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_flag_requires_notes(client, shop, products, inventory, customer):
    """PUT flag-correction — blank notes are 400."""
    order = await _create_order(client, shop, customer, [(products[0], 3)])

    response = await client.put(
        f"/sales-orders/{order['id']}/flag-correction", json={"correction_notes": "  "}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Correction notes are required"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_flag_and_resolve_correction(client, shop, products, inventory, customer):
    """Flag by sales person, resolve by admin: 3 -> 5 bags, totals recomputed."""
    dangote, _ = products
    order = await _create_order(client, shop, customer, [(dangote, 3)])

    response = await client.put(
        f"/sales-orders/{order['id']}/flag-correction",
        json={"correction_notes": "Customer paid for 5 bags"},
    )
    assert response.status_code == 200, response.text
    flagged = response.json()["order"]
    assert flagged["status"] == "Pending Correction"
    assert flagged["needs_correction"] is True
    assert flagged["correction_requested_by"] == "sales-user-1"

    # Sales persons cannot resolve
    response = await client.put(
        f"/sales-orders/{order['id']}/resolve-correction",
        json={"items": [{"product_id": str(dangote.id), "quantity": 5}]},
    )
    assert response.status_code == 403

    with override_auth(app, make_admin_user()):
        queue = await client.get("/sales-orders/corrections")
        assert [o["id"] for o in queue.json()["orders"]] == [order["id"]]

        response = await client.put(
            f"/sales-orders/{order['id']}/resolve-correction",
            json={
                "items": [{"product_id": str(dangote.id), "quantity": 5}],
                "expected_version": flagged["version"],
            },
        )

    assert response.status_code == 200, response.text
    resolved = response.json()["order"]
    assert resolved["status"] == "Not Collected"
    assert resolved["needs_correction"] is False
    assert resolved["correction_notes"] is None
    assert Decimal(resolved["total_amount"]) == Decimal("25000")
    assert inventory[dangote.id].quantity == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_resolve_keeps_delivery_charges(
    client, shop, products, inventory, customer
):
    """Resolve recomputes items but keeps the order's delivery costs."""
    with override_auth(app, make_admin_user()):
        await client.put("/settings", json={"delivery_cost": 200})

    dangote, _ = products
    order = await _create_order(
        client, shop, customer, [(dangote, 3)], is_delivery=True
    )
    assert Decimal(order["total_amount"]) == Decimal("15600")

    await client.put(
        f"/sales-orders/{order['id']}/flag-correction",
        json={"correction_notes": "Wrong quantity"},
    )
    with override_auth(app, make_admin_user()):
        response = await client.put(
            f"/sales-orders/{order['id']}/resolve-correction",
            json={
                "items": [{"product_id": str(dangote.id), "quantity": 5}],
                "status": "Collected",
            },
        )

    assert response.status_code == 200, response.text
    resolved = response.json()["order"]
    assert resolved["status"] == "Collected"
    assert Decimal(resolved["total_amount"]) == Decimal("25600")
    assert all(item["remaining_quantity"] == 0 for item in resolved["items"])


@pytest.mark.asyncio
@pytest.mark.integration
async def test_resolve_requires_pending_correction(
    client, shop, products, inventory, customer
):
    """PUT resolve-correction — only flagged orders can be resolved."""
    order = await _create_order(client, shop, customer, [(products[0], 1)])

    with override_auth(app, make_admin_user()):
        response = await client.put(
            f"/sales-orders/{order['id']}/resolve-correction", json={}
        )

    assert response.status_code == 409


# ---------------------------------------------------------------------------
# Reads / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_admin_only(client, shop, products, inventory, customer):
    """GET /sales-orders — admin listing with status filter."""
    await _create_order(client, shop, customer, [(products[0], 1)])

    response = await client.get("/sales-orders")
    assert response.status_code == 403

    with override_auth(app, make_admin_user()):
        response = await client.get("/sales-orders", params={"status": "Not Collected"})
        empty = await client.get("/sales-orders", params={"status": "Collected"})

    assert response.status_code == 200, response.text
    assert response.json()["total"] == 1
    assert empty.json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_orders_by_shop_and_customer(client, shop, products, inventory, customer):
    """GET /sales-orders/shop/{id} and /customer/{id}."""
    order = await _create_order(client, shop, customer, [(products[0], 1)])

    by_shop = await client.get(f"/sales-orders/shop/{shop.id}")
    by_customer = await client.get(f"/sales-orders/customer/{customer.id}")
    single = await client.get(f"/sales-orders/{order['id']}")
    missing = await client.get(f"/sales-orders/{uuid.uuid4()}")

    assert [o["id"] for o in by_shop.json()["orders"]] == [order["id"]]
    assert [o["id"] for o in by_customer.json()["orders"]] == [order["id"]]
    assert single.json()["order"]["order_number"] == order["order_number"]
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sales_person_cannot_order_for_another_shop(
    client, shop, products, inventory, customer
):
    """POST /sales-orders — the token's shop must match."""
    with override_auth(app, make_sales_user(shop_id=uuid.uuid4())):
        response = await client.post(
            "/sales-orders", json=_payload(shop, customer, [(products[0], 1)])
        )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_restores_inventory(client, shop, products, inventory, customer):
    """DELETE /sales-orders/{id} — admin only; bags return to stock."""
    dangote, _ = products
    order = await _create_order(client, shop, customer, [(dangote, 4)])
    assert inventory[dangote.id].quantity == 6

    response = await client.delete(f"/sales-orders/{order['id']}")
    assert response.status_code == 403

    with override_auth(app, make_admin_user()):
        response = await client.delete(f"/sales-orders/{order['id']}")

    assert response.status_code == 200, response.text
    assert response.json()["message"] == (
        "Sales order deleted successfully and inventory restored"
    )
    assert inventory[dangote.id].quantity == 10

    response = await client.get(f"/sales-orders/{order['id']}")
    assert response.status_code == 404

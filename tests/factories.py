"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    customer = CustomerFactory.create(phone="+2348031234567")
    db_session.add(customer)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_phone() -> str:
    return f"+23480{uuid.uuid4().int % 10**8:08d}"


def _unique_order_number() -> str:
    return f"TEST-{uuid.uuid4().hex[:10].upper()}"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class ShopFactory:
    @staticmethod
    def create(**overrides):
        from services.sales_service.models import Shop

        defaults = {
            "id": _uuid(),
            "name": "Test Shop",
            "address": "12 Allen Avenue, Ikeja",
            "phone": "+2341234567",
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Shop(**defaults)


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.sales_service.models import Product

        defaults = {
            "id": _uuid(),
            "name": "Dangote Cement",
            "variant": "3X",
            "brand": "Dangote",
            "size": 50,
            "price": Decimal("5000.00"),
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Product(**defaults)


class InventoryItemFactory:
    @staticmethod
    def create(product_id=None, shop_id=None, **overrides):
        from services.sales_service.models import InventoryItem

        defaults = {
            "id": _uuid(),
            "product_id": product_id or _uuid(),
            "shop_id": shop_id or _uuid(),
            "quantity": 10,
            "min_stock_level": 5,
            "max_stock_level": 1000,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return InventoryItem(**defaults)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


class CustomerFactory:
    @staticmethod
    def create(**overrides):
        from services.sales_service.models import Customer

        defaults = {
            "id": _uuid(),
            "name": "Test Customer",
            "phone": _unique_phone(),
            "email": None,
            "total_orders": 0,
            "total_spent": Decimal("0.00"),
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Customer(**defaults)


# ---------------------------------------------------------------------------
# Sales orders
# ---------------------------------------------------------------------------


class SalesOrderItemFactory:
    @staticmethod
    def create(product_id=None, **overrides):
        from services.sales_service.models import SalesOrderItem

        quantity = overrides.pop("quantity", 3)
        unit_price = overrides.pop("unit_price", Decimal("5000.00"))
        defaults = {
            "id": _uuid(),
            "product_id": product_id or _uuid(),
            "line_number": 1,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": unit_price * quantity,
            "collected_quantity": 0,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return SalesOrderItem(**defaults)


class SalesOrderFactory:
    """Builds an order directly, bypassing checkout (no stock movement)."""

    @staticmethod
    def create(customer_id=None, shop_id=None, items=None, **overrides):
        from services.sales_service.models import (
            PaymentMethod,
            SalesOrder,
            SalesOrderStatus,
        )

        items = items or []
        defaults = {
            "id": _uuid(),
            "order_number": _unique_order_number(),
            "customer_id": customer_id or _uuid(),
            "shop_id": shop_id or _uuid(),
            "sales_person_id": "sales-user-1",
            "is_delivery": False,
            "total_amount": sum(
                (item.total_price for item in items), Decimal("0.00")
            ),
            "payment_method": PaymentMethod.CASH,
            "status": SalesOrderStatus.NOT_COLLECTED,
            "order_date": _now(),
            "needs_correction": False,
            "created_at": _now(),
            "updated_at": _now(),
            "items": items,
        }
        defaults.update(overrides)
        return SalesOrder(**defaults)

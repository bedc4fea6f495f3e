"""Sales Service models package."""

from services.sales_service.models.catalog import Product, Shop
from services.sales_service.models.commerce import (
    Customer,
    DeliverySettings,
    SalesAuditLog,
    SalesOrder,
    SalesOrderItem,
)
from services.sales_service.models.enums import (
    STATUS_TRANSITIONS,
    AuditEntityType,
    CustomerType,
    InventoryMovementType,
    PaymentMethod,
    SalesOrderStatus,
)
from services.sales_service.models.inventory import InventoryItem, InventoryMovement

__all__ = [
    "STATUS_TRANSITIONS",
    "AuditEntityType",
    "Customer",
    "CustomerType",
    "DeliverySettings",
    "InventoryItem",
    "InventoryMovement",
    "InventoryMovementType",
    "PaymentMethod",
    "Product",
    "SalesAuditLog",
    "SalesOrder",
    "SalesOrderItem",
    "SalesOrderStatus",
    "Shop",
]

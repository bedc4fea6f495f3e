"""Enum definitions for sales service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class SalesOrderStatus(str, enum.Enum):
    NOT_COLLECTED = "Not Collected"
    COLLECTED = "Collected"
    PENDING_CORRECTION = "Pending Correction"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    POS = "pos"
    TRANSFER = "transfer"


class CustomerType(str, enum.Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"
    CONTRACTOR = "contractor"


class InventoryMovementType(str, enum.Enum):
    RESTOCK = "restock"
    SALE = "sale"
    RETURN = "return"
    ADJUSTMENT = "adjustment"


class AuditEntityType(str, enum.Enum):
    SALES_ORDER = "sales_order"
    CUSTOMER = "customer"
    INVENTORY = "inventory"
    SETTINGS = "settings"


# Allowed order status moves. Leaving PENDING_CORRECTION is an admin action.
STATUS_TRANSITIONS: dict[SalesOrderStatus, frozenset[SalesOrderStatus]] = {
    SalesOrderStatus.NOT_COLLECTED: frozenset(
        {SalesOrderStatus.COLLECTED, SalesOrderStatus.PENDING_CORRECTION}
    ),
    SalesOrderStatus.PENDING_CORRECTION: frozenset(
        {SalesOrderStatus.NOT_COLLECTED, SalesOrderStatus.COLLECTED}
    ),
    SalesOrderStatus.COLLECTED: frozenset(),
}

"""Per-shop stock deduction and restoration for sales orders.

Every change is validated for the whole order first; only when no line is
short does any ``InventoryItem`` row move. Each applied change is recorded
as an ``InventoryMovement``.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.sales_service.models import (
    InventoryItem,
    InventoryMovement,
    InventoryMovementType,
    Product,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

REFERENCE_SALES_ORDER = "sales_order"


class InsufficientStockError(HTTPException):
    """400 carrying every short line, not just the first."""

    def __init__(self, items: list[dict]):
        self.items = items
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Insufficient stock for some items",
                "insufficient_stock_items": items,
            },
        )


async def load_inventory(
    db: AsyncSession,
    *,
    shop_id: uuid.UUID,
    product_ids: set[uuid.UUID],
) -> dict[uuid.UUID, InventoryItem]:
    """Load (and lock, where supported) the shop's rows for ``product_ids``."""
    if not product_ids:
        return {}
    result = await db.execute(
        select(InventoryItem)
        .where(
            InventoryItem.shop_id == shop_id,
            InventoryItem.product_id.in_(product_ids),
        )
        .with_for_update()
    )
    return {inv.product_id: inv for inv in result.scalars().all()}


def find_shortfalls(
    inventory: dict[uuid.UUID, InventoryItem],
    deduct: dict[uuid.UUID, int],
    restore: dict[uuid.UUID, int],
    products: dict[uuid.UUID, Product],
) -> list[dict]:
    shortfalls = []
    for product_id, requested in deduct.items():
        inv = inventory.get(product_id)
        # A missing row means the shop never stocked the product
        available = inv.quantity + restore.get(product_id, 0) if inv else 0
        if available < requested:
            product = products.get(product_id)
            shortfalls.append(
                {
                    "product_id": str(product_id),
                    "product_name": product.display_name if product else None,
                    "requested": requested,
                    "available": available,
                }
            )
    return shortfalls


async def apply_stock_changes(
    db: AsyncSession,
    *,
    shop_id: uuid.UUID,
    deduct: Optional[dict[uuid.UUID, int]] = None,
    restore: Optional[dict[uuid.UUID, int]] = None,
    products: Optional[dict[uuid.UUID, Product]] = None,
    reference_id: Optional[uuid.UUID] = None,
    performed_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> None:
    """Return ``restore`` bags to stock and take ``deduct`` bags out of it.

    Raises ``InsufficientStockError`` before touching any row if a deduction
    cannot be met (restored bags of the same product count as available).
    Nothing is committed here.
    """
    deduct = deduct or {}
    restore = restore or {}
    inventory = await load_inventory(
        db, shop_id=shop_id, product_ids=set(deduct) | set(restore)
    )

    shortfalls = find_shortfalls(inventory, deduct, restore, products or {})
    if shortfalls:
        logger.info(
            "Stock shortfall in shop %s for %d item(s)", shop_id, len(shortfalls)
        )
        raise InsufficientStockError(shortfalls)

    now = utc_now()
    for product_id, quantity in restore.items():
        inv = inventory.get(product_id)
        if inv is None:
            logger.warning(
                "No inventory row for product %s in shop %s; %d bag(s) not restored",
                product_id,
                shop_id,
                quantity,
            )
            continue
        inv.quantity += quantity
        db.add(
            InventoryMovement(
                inventory_item_id=inv.id,
                movement_type=InventoryMovementType.RETURN,
                quantity=quantity,
                reference_type=REFERENCE_SALES_ORDER,
                reference_id=reference_id,
                notes=notes,
                performed_by=performed_by,
            )
        )

    for product_id, quantity in deduct.items():
        inv = inventory[product_id]
        inv.quantity -= quantity
        inv.last_sold_at = now
        db.add(
            InventoryMovement(
                inventory_item_id=inv.id,
                movement_type=InventoryMovementType.SALE,
                quantity=-quantity,
                reference_type=REFERENCE_SALES_ORDER,
                reference_id=reference_id,
                notes=notes,
                performed_by=performed_by,
            )
        )

"""Sales order lifecycle: checkout, collection and the correction workflow.

This module is the only writer of ``SalesOrder.status``,
``SalesOrderItem.collected_quantity`` and the correction fields. Each
operation validates everything it needs before mutating anything and
commits exactly once.

Concurrency: callers may pass ``expected_version``; a mismatch is a 409
before any write. ``SalesOrder.version`` is also the mapper's
``version_id_col``, so a racing writer that commits second fails with
``StaleDataError``, which is reported as a 409 as well.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.currency import format_naira, to_money
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.sales_service.models import (
    STATUS_TRANSITIONS,
    AuditEntityType,
    Customer,
    Product,
    SalesOrder,
    SalesOrderItem,
    SalesOrderStatus,
    Shop,
)
from services.sales_service.schemas import (
    PartialCollectionRequest,
    ResolveCorrectionRequest,
    SalesOrderCreate,
    SalesOrderStatusUpdate,
)
from services.sales_service.services.audit import log_audit
from services.sales_service.services.customer_ops import (
    ensure_identity_free,
    get_customer_or_404,
    record_order_stats,
    reverse_order_stats,
)
from services.sales_service.services.inventory_ops import apply_stock_changes
from services.sales_service.services.pricing import (
    NO_DELIVERY,
    charges_of,
    delivery_charges,
    line_total,
    order_total,
)
from services.sales_service.services.settings_ops import get_delivery_settings
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

logger = get_logger(__name__)

CONCURRENT_UPDATE_MESSAGE = (
    "Sales order was modified by someone else. Reload it and try again."
)
DUPLICATE_ORDER_NUMBER_MESSAGE = (
    "Duplicate order number. A sales order with this order number already exists."
)

ORDER_LOAD_OPTIONS = (
    selectinload(SalesOrder.items).selectinload(SalesOrderItem.product),
    selectinload(SalesOrder.customer),
    selectinload(SalesOrder.shop),
)


# ============================================================================
# HELPERS
# ============================================================================


async def get_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    refresh: bool = False,
    lock: bool = False,
) -> SalesOrder:
    """Load an order with items, products, customer and shop, or 404."""
    query = (
        select(SalesOrder).where(SalesOrder.id == order_id).options(*ORDER_LOAD_OPTIONS)
    )
    if lock:
        query = query.with_for_update()
    if refresh or lock:
        query = query.execution_options(populate_existing=True)

    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Sales order not found")
    return order


def check_version(order: SalesOrder, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != order.version:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": CONCURRENT_UPDATE_MESSAGE,
                "current_version": order.version,
            },
        )


async def load_products(
    db: AsyncSession, product_ids: list[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    """Catalog rows for ``product_ids``; 400 if any is unknown or inactive."""
    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {product.id: product for product in result.scalars().all()}
    invalid = [
        str(pid)
        for pid in product_ids
        if pid not in products or not products[pid].is_active
    ]
    if invalid:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid or inactive product(s): {', '.join(invalid)}",
        )
    return products


def build_items(
    quantities: dict[uuid.UUID, int],
    products: dict[uuid.UUID, Product],
    *,
    collected: bool = False,
    already_collected: Optional[dict[uuid.UUID, int]] = None,
) -> list[SalesOrderItem]:
    """Price lines from the catalog; client prices never reach the order.

    ``already_collected`` carries bags picked up before a revision, capped at
    the revised quantity.
    """
    already_collected = already_collected or {}
    items = []
    for line_number, (product_id, quantity) in enumerate(quantities.items(), start=1):
        unit_price = to_money(products[product_id].price)
        items.append(
            SalesOrderItem(
                product_id=product_id,
                line_number=line_number,
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total(quantity, unit_price),
                collected_quantity=(
                    quantity
                    if collected
                    else min(quantity, already_collected.get(product_id, 0))
                ),
            )
        )
    return items


def _clear_correction(order: SalesOrder) -> None:
    order.needs_correction = False
    order.correction_notes = None
    order.correction_requested_at = None
    order.correction_requested_by = None


def _snapshot(order: SalesOrder) -> dict:
    return {
        "status": order.status.value,
        "total_amount": str(order.total_amount),
        "items": [
            {
                "product_id": str(item.product_id),
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
                "collected_quantity": item.collected_quantity,
            }
            for item in order.items
        ],
    }


async def _commit(db: AsyncSession, *, conflict_message: Optional[str] = None) -> None:
    """Commit, turning lost races and unique violations into 409s."""
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("Concurrent update lost the race; returning 409")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=CONCURRENT_UPDATE_MESSAGE
        )
    except IntegrityError as exc:
        await db.rollback()
        if conflict_message is None:
            raise
        logger.info("Integrity conflict on commit: %s", exc.orig)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=conflict_message
        )


# ============================================================================
# CHECKOUT
# ============================================================================


async def create_sales_order(
    db: AsyncSession, *, data: SalesOrderCreate, current_user: AuthUser
) -> SalesOrder:
    """Create an order, deducting stock for every line or for none.

    Prices, delivery charges and the total are computed here; a client
    ``total_amount`` only produces a warning when it disagrees.
    """
    shop = await db.get(Shop, data.shop_id)
    if not shop or not shop.is_active:
        raise HTTPException(status_code=404, detail="Shop not found")
    if current_user.shop_id and current_user.shop_id != shop.id:
        raise HTTPException(
            status_code=403, detail="You can only create orders for your own shop"
        )

    customer = await get_customer_or_404(db, data.customer_id)
    order_number = data.order_number or SalesOrder.generate_order_number()

    duplicate = await db.scalar(
        select(func.count(SalesOrder.id)).where(
            SalesOrder.order_number == order_number
        )
    )
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_ORDER_NUMBER_MESSAGE
        )

    quantities = {item.product_id: item.quantity for item in data.items}
    products = await load_products(db, list(quantities))

    collected = data.status == SalesOrderStatus.COLLECTED
    items = build_items(quantities, products, collected=collected)
    total_bags = sum(quantities.values())

    charges = NO_DELIVERY
    if data.is_delivery:
        charges = delivery_charges(await get_delivery_settings(db), total_bags)
    total = order_total(
        (item.total_price for item in items), data.is_delivery, charges
    )

    if data.total_amount is not None and to_money(data.total_amount) != total:
        logger.warning(
            "Client total %s for order %s differs from computed total %s",
            format_naira(data.total_amount),
            order_number,
            format_naira(total),
        )

    order_id = uuid.uuid4()
    await apply_stock_changes(
        db,
        shop_id=shop.id,
        deduct=quantities,
        products=products,
        reference_id=order_id,
        performed_by=current_user.user_id,
        notes=f"Sale {order_number}",
    )

    now = utc_now()
    order = SalesOrder(
        id=order_id,
        order_number=order_number,
        customer_id=customer.id,
        shop_id=shop.id,
        sales_person_id=current_user.user_id,
        is_delivery=data.is_delivery,
        onloading_cost=charges.onloading_cost,
        delivery_cost=charges.delivery_cost,
        offloading_cost=charges.offloading_cost,
        total_amount=total,
        payment_method=data.payment_method,
        status=data.status,
        order_date=now,
        delivery_date=data.delivery_date,
        collected_date=now if collected else None,
        delivery_address=data.delivery_address,
        notes=data.notes,
        items=items,
    )
    db.add(order)
    record_order_stats(customer, total)

    await log_audit(
        db,
        AuditEntityType.SALES_ORDER,
        order_id,
        "created",
        current_user.user_id,
        new_value={
            "order_number": order_number,
            "status": data.status.value,
            "total_amount": str(total),
            "total_bags": total_bags,
        },
    )
    await _commit(db, conflict_message=DUPLICATE_ORDER_NUMBER_MESSAGE)

    logger.info(
        "Created sales order %s (%d bag(s), total %s) in shop %s",
        order_number,
        total_bags,
        format_naira(total),
        shop.id,
    )
    return await get_order(db, order_id, refresh=True)


# ============================================================================
# STATUS / COLLECTION
# ============================================================================


async def update_status(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    data: SalesOrderStatusUpdate,
    current_user: AuthUser,
) -> SalesOrder:
    """Move an order along the status table.

    Moving to ``Pending Correction`` is a flag and needs notes. Leaving
    ``Pending Correction`` here is an admin action that keeps the items.
    """
    if data.status == SalesOrderStatus.PENDING_CORRECTION:
        return await flag_for_correction(
            db,
            order_id=order_id,
            correction_notes=data.correction_notes,
            expected_version=data.expected_version,
            current_user=current_user,
        )

    order = await get_order(db, order_id)
    check_version(order, data.expected_version)

    current = order.status
    target = data.status
    if target not in STATUS_TRANSITIONS[current]:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change status from '{current.value}' to '{target.value}'",
        )
    if current == SalesOrderStatus.PENDING_CORRECTION and not current_user.is_admin:
        raise HTTPException(
            status_code=403, detail="Only admins can resolve orders pending correction"
        )

    now = utc_now()
    if target == SalesOrderStatus.COLLECTED:
        for item in order.items:
            item.collected_quantity = item.quantity
        order.collected_date = now
    else:
        order.collected_date = None
    if current == SalesOrderStatus.PENDING_CORRECTION:
        _clear_correction(order)

    order.status = target
    order.updated_at = now

    await log_audit(
        db,
        AuditEntityType.SALES_ORDER,
        order.id,
        "status_changed",
        current_user.user_id,
        old_value={"status": current.value},
        new_value={"status": target.value},
    )
    await _commit(db)

    logger.info(
        "Sales order %s: %s -> %s", order.order_number, current.value, target.value
    )
    return await get_order(db, order.id, refresh=True)


async def record_partial_collection(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    data: PartialCollectionRequest,
    current_user: AuthUser,
) -> tuple[SalesOrder, bool]:
    """Add collected bags per product, capped at the ordered quantity.

    Status is left alone even when every line is complete; returns the
    order and whether all items are now fully collected.
    """
    order = await get_order(db, order_id, lock=True)
    check_version(order, data.expected_version)

    if order.status != SalesOrderStatus.NOT_COLLECTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                "Partial collection is only allowed for orders that are "
                "'Not Collected'"
            ),
        )

    items_by_product = {item.product_id: item for item in order.items}
    unknown = [
        str(entry.product_id)
        for entry in data.collections
        if entry.product_id not in items_by_product
    ]
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Product(s) not on this order: {', '.join(unknown)}",
        )

    before = {
        str(pid): item.collected_quantity for pid, item in items_by_product.items()
    }
    for entry in data.collections:
        item = items_by_product[entry.product_id]
        item.collected_quantity = min(
            item.quantity, item.collected_quantity + entry.quantity_collected
        )
    order.updated_at = utc_now()
    all_collected = all(item.is_fully_collected for item in order.items)

    await log_audit(
        db,
        AuditEntityType.SALES_ORDER,
        order.id,
        "partial_collection",
        current_user.user_id,
        old_value={"collected": before},
        new_value={
            "collected": {
                str(pid): item.collected_quantity
                for pid, item in items_by_product.items()
            }
        },
    )
    await _commit(db)

    logger.info(
        "Partial collection on %s (all collected: %s)",
        order.order_number,
        all_collected,
    )
    return await get_order(db, order.id, refresh=True), all_collected


# ============================================================================
# CORRECTIONS
# ============================================================================


async def flag_for_correction(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    correction_notes: Optional[str],
    expected_version: Optional[int],
    current_user: AuthUser,
) -> SalesOrder:
    notes = (correction_notes or "").strip()
    if not notes:
        raise HTTPException(status_code=400, detail="Correction notes are required")

    order = await get_order(db, order_id)
    check_version(order, expected_version)

    if order.status != SalesOrderStatus.NOT_COLLECTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only orders that are 'Not Collected' can be flagged for correction",
        )

    now = utc_now()
    order.status = SalesOrderStatus.PENDING_CORRECTION
    order.needs_correction = True
    order.correction_notes = notes
    order.correction_requested_at = now
    order.correction_requested_by = current_user.user_id
    order.updated_at = now

    await log_audit(
        db,
        AuditEntityType.SALES_ORDER,
        order.id,
        "correction_flagged",
        current_user.user_id,
        old_value={"status": SalesOrderStatus.NOT_COLLECTED.value},
        new_value={"status": SalesOrderStatus.PENDING_CORRECTION.value},
        notes=notes,
    )
    await _commit(db)

    logger.info("Sales order %s flagged for correction", order.order_number)
    return await get_order(db, order.id, refresh=True)


async def resolve_correction(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    data: ResolveCorrectionRequest,
    current_user: AuthUser,
) -> SalesOrder:
    """Apply an admin's corrections and leave ``Pending Correction``.

    Revised items are priced from the catalog and stock is rebalanced
    (old quantities back, new quantities out). The total is rebuilt from
    the revised items plus the delivery costs already on the order. Any
    failure leaves the order untouched.
    """
    order = await get_order(db, order_id)
    check_version(order, data.expected_version)

    if order.status != SalesOrderStatus.PENDING_CORRECTION:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only orders pending correction can be resolved",
        )

    customer: Customer = order.customer
    customer_update = {
        field: value
        for field, value in (
            ("name", data.customer_name),
            ("phone", data.customer_phone),
            ("email", data.customer_email),
        )
        if value
    }
    if customer_update:
        await ensure_identity_free(
            db,
            phone=customer_update.get("phone"),
            email=customer_update.get("email"),
            exclude_id=customer.id,
        )

    target = data.status
    collected = target == SalesOrderStatus.COLLECTED
    old_snapshot = _snapshot(order)
    old_total = to_money(order.total_amount)

    if data.items is not None:
        quantities = {item.product_id: item.quantity for item in data.items}
        products = await load_products(db, list(quantities))
        await apply_stock_changes(
            db,
            shop_id=order.shop_id,
            deduct=quantities,
            restore={item.product_id: item.quantity for item in order.items},
            products=products,
            reference_id=order.id,
            performed_by=current_user.user_id,
            notes=f"Correction {order.order_number}",
        )
        picked_up = {
            item.product_id: item.collected_quantity for item in order.items
        }
        order.items.clear()
        order.items.extend(
            build_items(
                quantities, products, collected=collected, already_collected=picked_up
            )
        )
    elif collected:
        for item in order.items:
            item.collected_quantity = item.quantity

    new_total = order_total(
        (item.total_price for item in order.items),
        order.is_delivery,
        charges_of(order),
    )
    order.total_amount = new_total

    for field, value in customer_update.items():
        setattr(customer, field, value)
    customer.total_spent = max(
        to_money(0), to_money(customer.total_spent + (new_total - old_total))
    )

    if data.payment_method is not None:
        order.payment_method = data.payment_method
    if data.delivery_address is not None:
        order.delivery_address = data.delivery_address
    if data.notes is not None:
        order.notes = data.notes

    now = utc_now()
    order.status = target
    order.collected_date = now if collected else None
    _clear_correction(order)
    order.updated_at = now

    await log_audit(
        db,
        AuditEntityType.SALES_ORDER,
        order.id,
        "correction_resolved",
        current_user.user_id,
        old_value=old_snapshot,
        new_value={
            "status": target.value,
            "total_amount": str(new_total),
            "customer": customer_update or None,
        },
    )
    await _commit(
        db, conflict_message="Another customer with this email or phone already exists"
    )

    logger.info(
        "Correction resolved for %s: total %s -> %s, status %s",
        order.order_number,
        format_naira(old_total),
        format_naira(new_total),
        target.value,
    )
    return await get_order(db, order.id, refresh=True)


# ============================================================================
# DELETE
# ============================================================================


async def delete_sales_order(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    current_user: AuthUser,
    expected_version: Optional[int] = None,
) -> None:
    """Delete an order, returning its bags to stock and undoing customer stats."""
    order = await get_order(db, order_id)
    check_version(order, expected_version)

    await apply_stock_changes(
        db,
        shop_id=order.shop_id,
        restore={item.product_id: item.quantity for item in order.items},
        reference_id=order.id,
        performed_by=current_user.user_id,
        notes=f"Deleted {order.order_number}",
    )
    reverse_order_stats(order.customer, to_money(order.total_amount))

    await log_audit(
        db,
        AuditEntityType.SALES_ORDER,
        order.id,
        "deleted",
        current_user.user_id,
        old_value={"order_number": order.order_number, **_snapshot(order)},
    )
    await db.delete(order)
    await _commit(db)

    logger.info("Deleted sales order %s", order.order_number)


# ============================================================================
# READS
# ============================================================================


async def list_orders(
    db: AsyncSession,
    *,
    status_filter: Optional[SalesOrderStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[SalesOrder], int]:
    query = select(SalesOrder).options(*ORDER_LOAD_OPTIONS)
    count_query = select(func.count(SalesOrder.id))
    if status_filter is not None:
        query = query.where(SalesOrder.status == status_filter)
        count_query = count_query.where(SalesOrder.status == status_filter)

    total = await db.scalar(count_query) or 0
    result = await db.execute(
        query.order_by(SalesOrder.order_date.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def list_orders_for_customer(
    db: AsyncSession, customer_id: uuid.UUID
) -> list[SalesOrder]:
    await get_customer_or_404(db, customer_id)
    result = await db.execute(
        select(SalesOrder)
        .where(SalesOrder.customer_id == customer_id)
        .options(*ORDER_LOAD_OPTIONS)
        .order_by(SalesOrder.order_date.desc())
    )
    return list(result.scalars().all())


async def list_orders_for_shop(
    db: AsyncSession, shop_id: uuid.UUID
) -> list[SalesOrder]:
    shop = await db.get(Shop, shop_id)
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    result = await db.execute(
        select(SalesOrder)
        .where(SalesOrder.shop_id == shop_id)
        .options(*ORDER_LOAD_OPTIONS)
        .order_by(SalesOrder.order_date.desc())
    )
    return list(result.scalars().all())


async def list_not_collected(
    db: AsyncSession, *, shop_id: Optional[uuid.UUID] = None
) -> list[SalesOrder]:
    query = select(SalesOrder).where(
        SalesOrder.status == SalesOrderStatus.NOT_COLLECTED
    )
    if shop_id is not None:
        query = query.where(SalesOrder.shop_id == shop_id)
    result = await db.execute(
        query.options(*ORDER_LOAD_OPTIONS).order_by(SalesOrder.order_date.desc())
    )
    return list(result.scalars().all())


async def list_corrections(db: AsyncSession) -> list[SalesOrder]:
    """Orders waiting on an admin, newest request first."""
    result = await db.execute(
        select(SalesOrder)
        .where(
            SalesOrder.needs_correction.is_(True),
            SalesOrder.status == SalesOrderStatus.PENDING_CORRECTION,
        )
        .options(*ORDER_LOAD_OPTIONS)
        .order_by(SalesOrder.correction_requested_at.desc())
    )
    return list(result.scalars().all())

"""Sales orders router: checkout, collection tracking and corrections."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin, require_sales_person
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.sales_service.models import SalesOrderStatus
from services.sales_service.schemas import (
    Envelope,
    FlagCorrectionRequest,
    NotCollectedEnvelope,
    PartialCollectionEnvelope,
    PartialCollectionRequest,
    ResolveCorrectionRequest,
    SalesOrderCreate,
    SalesOrderEnvelope,
    SalesOrderListEnvelope,
    SalesOrderStatusUpdate,
)
from services.sales_service.services import order_ops
from services.sales_service.services.pricing import not_collected_totals
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/sales-orders", tags=["sales-orders"])


# ============================================================================
# READS
# ============================================================================


@router.get("", response_model=SalesOrderListEnvelope)
async def list_sales_orders(
    status_filter: Optional[SalesOrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all sales orders (admin), newest first."""
    orders, total = await order_ops.list_orders(
        db, status_filter=status_filter, page=page, page_size=page_size
    )
    return {
        "success": True,
        "orders": orders,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get("/not-collected", response_model=NotCollectedEnvelope)
async def list_not_collected_orders(
    shop_id: Optional[uuid.UUID] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders awaiting collection with remaining bag and value totals.

    Sales persons default to their own shop when no ``shop_id`` is given.
    """
    if shop_id is None and current_user.is_sales_person and current_user.shop_id:
        shop_id = current_user.shop_id

    orders = await order_ops.list_not_collected(db, shop_id=shop_id)
    total_count, total_bags, total_value = not_collected_totals(orders)
    return {
        "success": True,
        "orders": orders,
        "total_count": total_count,
        "total_bags": total_bags,
        "total_value": total_value,
    }


@router.get("/corrections", response_model=SalesOrderListEnvelope)
async def list_correction_requests(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders pending correction (admin), most recent request first."""
    orders = await order_ops.list_corrections(db)
    return {"success": True, "orders": orders, "total": len(orders)}


@router.get("/customer/{customer_id}", response_model=SalesOrderListEnvelope)
async def list_customer_orders(
    customer_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    orders = await order_ops.list_orders_for_customer(db, customer_id)
    return {"success": True, "orders": orders, "total": len(orders)}


@router.get("/shop/{shop_id}", response_model=SalesOrderListEnvelope)
async def list_shop_orders(
    shop_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    orders = await order_ops.list_orders_for_shop(db, shop_id)
    return {"success": True, "orders": orders, "total": len(orders)}


@router.get("/{order_id}", response_model=SalesOrderEnvelope)
async def get_sales_order(
    order_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    return {"success": True, "order": order}


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "", response_model=SalesOrderEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_sales_order(
    request: SalesOrderCreate,
    current_user: AuthUser = Depends(require_sales_person),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a sales order; totals and prices are computed server-side."""
    order = await order_ops.create_sales_order(
        db, data=request, current_user=current_user
    )
    return {
        "success": True,
        "message": "Sales order created successfully and inventory updated",
        "order": order,
    }


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.put("/{order_id}/status", response_model=SalesOrderEnvelope)
async def update_sales_order_status(
    order_id: uuid.UUID,
    request: SalesOrderStatusUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.update_status(
        db, order_id=order_id, data=request, current_user=current_user
    )
    return {
        "success": True,
        "message": "Sales order status updated successfully",
        "order": order,
    }


@router.put("/{order_id}/partial-collection", response_model=PartialCollectionEnvelope)
async def record_partial_collection(
    order_id: uuid.UUID,
    request: PartialCollectionRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Record bags picked up so far. Status is not changed."""
    order, all_collected = await order_ops.record_partial_collection(
        db, order_id=order_id, data=request, current_user=current_user
    )
    message = "Partial collection recorded"
    if all_collected:
        message += "; all items collected, mark the order as Collected to finish"
    return {
        "success": True,
        "message": message,
        "order": order,
        "all_items_collected": all_collected,
    }


@router.put("/{order_id}/flag-correction", response_model=SalesOrderEnvelope)
async def flag_sales_order_for_correction(
    order_id: uuid.UUID,
    request: FlagCorrectionRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.flag_for_correction(
        db,
        order_id=order_id,
        correction_notes=request.correction_notes,
        expected_version=request.expected_version,
        current_user=current_user,
    )
    return {
        "success": True,
        "message": "Order flagged for correction successfully",
        "order": order,
    }


@router.put("/{order_id}/resolve-correction", response_model=SalesOrderEnvelope)
async def resolve_sales_order_correction(
    order_id: uuid.UUID,
    request: ResolveCorrectionRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.resolve_correction(
        db, order_id=order_id, data=request, current_user=current_user
    )
    return {
        "success": True,
        "message": "Order correction resolved successfully",
        "order": order,
    }


@router.delete("/{order_id}", response_model=Envelope)
async def delete_sales_order(
    order_id: uuid.UUID,
    expected_version: Optional[int] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await order_ops.delete_sales_order(
        db,
        order_id=order_id,
        current_user=current_user,
        expected_version=expected_version,
    )
    return {
        "success": True,
        "message": "Sales order deleted successfully and inventory restored",
    }

"""Customer registry router."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.sales_service.models import Customer
from services.sales_service.schemas import (
    CustomerCreate,
    CustomerEnvelope,
    CustomerListEnvelope,
    CustomerUpdate,
    Envelope,
    SalesOrderListEnvelope,
)
from services.sales_service.services import customer_ops, order_ops
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post(
    "", response_model=CustomerEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_customer(
    request: CustomerCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a customer. 409 if the phone or email is already registered."""
    customer = await customer_ops.create_customer(
        db, data=request, performed_by=current_user.user_id
    )
    return {
        "success": True,
        "message": "Customer created successfully",
        "customer": customer,
    }


@router.get("", response_model=CustomerListEnvelope)
async def list_customers(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    total = await db.scalar(select(func.count(Customer.id))) or 0
    result = await db.execute(
        select(Customer)
        .order_by(Customer.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return {
        "success": True,
        "customers": result.scalars().all(),
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get("/search", response_model=CustomerListEnvelope)
async def search_customers(
    q: str = "",
    limit: int = Query(10, ge=1),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Search by name, phone, email or company (at least 2 characters)."""
    customers = await customer_ops.search_customers(db, q=q, limit=limit)
    return {"success": True, "customers": customers, "total": len(customers)}


@router.get("/lookup", response_model=CustomerEnvelope)
async def lookup_customer(
    phone: Optional[str] = None,
    email: Optional[str] = None,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Find the customer owning a phone and/or email (404 / 409)."""
    customer = await customer_ops.lookup_customer(
        db,
        phone=phone.strip() if phone else None,
        email=email.strip().lower() if email else None,
    )
    return {"success": True, "customer": customer}


@router.get("/{customer_id}", response_model=CustomerEnvelope)
async def get_customer(
    customer_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await customer_ops.get_customer_or_404(db, customer_id)
    return {"success": True, "customer": customer}


@router.put("/{customer_id}", response_model=CustomerEnvelope)
async def update_customer(
    customer_id: uuid.UUID,
    request: CustomerUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    customer = await customer_ops.update_customer(
        db,
        customer_id=customer_id,
        data=request,
        performed_by=current_user.user_id,
    )
    return {
        "success": True,
        "message": "Customer updated successfully",
        "customer": customer,
    }


@router.delete("/{customer_id}", response_model=Envelope)
async def delete_customer(
    customer_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await customer_ops.delete_customer(
        db, customer_id=customer_id, performed_by=current_user.user_id
    )
    return {"success": True, "message": "Customer deleted successfully"}


@router.get("/{customer_id}/orders", response_model=SalesOrderListEnvelope)
async def get_customer_orders(
    customer_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    orders = await order_ops.list_orders_for_customer(db, customer_id)
    return {"success": True, "orders": orders, "total": len(orders)}

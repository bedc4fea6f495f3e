"""Customer registry operations: identity checks, lookup, search and stats."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.currency import to_money
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.sales_service.models import AuditEntityType, Customer, SalesOrder
from services.sales_service.schemas import CustomerCreate, CustomerUpdate
from services.sales_service.services.audit import log_audit
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_MAX_LIMIT = 20


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


async def get_customer_or_404(db: AsyncSession, customer_id: uuid.UUID) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


async def find_identity_conflicts(
    db: AsyncSession,
    *,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[uuid.UUID] = None,
) -> list[Customer]:
    """Customers (other than ``exclude_id``) holding ``phone`` or ``email``."""
    clauses = []
    if phone:
        clauses.append(Customer.phone == phone)
    if email:
        clauses.append(func.lower(Customer.email) == email.lower())
    if not clauses:
        return []

    query = select(Customer).where(or_(*clauses))
    if exclude_id is not None:
        query = query.where(Customer.id != exclude_id)
    result = await db.execute(query)
    return list(result.scalars().all())


def conflict_message(
    conflicts: list[Customer], phone: Optional[str], email: Optional[str], prefix: str
) -> str:
    phone_taken = any(c.phone == phone for c in conflicts) if phone else False
    email_taken = (
        any((c.email or "").lower() == email.lower() for c in conflicts)
        if email
        else False
    )
    if phone_taken and email_taken:
        return f"{prefix} with this email or phone already exists"
    if email_taken:
        return f"{prefix} with this email already exists"
    return f"{prefix} with this phone already exists"


async def ensure_identity_free(
    db: AsyncSession,
    *,
    phone: Optional[str],
    email: Optional[str],
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    conflicts = await find_identity_conflicts(
        db, phone=phone, email=email, exclude_id=exclude_id
    )
    if conflicts:
        prefix = "Another customer" if exclude_id else "Customer"
        raise _conflict(conflict_message(conflicts, phone, email, prefix))


async def create_customer(
    db: AsyncSession, *, data: CustomerCreate, performed_by: str
) -> Customer:
    """Create a customer, or 409 if the phone/email already belongs to one."""
    await ensure_identity_free(db, phone=data.phone, email=data.email)

    customer = Customer(**data.model_dump())
    db.add(customer)
    try:
        await db.flush()
        await log_audit(
            db,
            AuditEntityType.CUSTOMER,
            customer.id,
            "created",
            performed_by,
            new_value={"name": customer.name, "phone": customer.phone},
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _conflict("Customer with this email or phone already exists")

    await db.refresh(customer)
    logger.info("Created customer %s (%s)", customer.id, customer.phone)
    return customer


async def lookup_customer(
    db: AsyncSession, *, phone: Optional[str], email: Optional[str]
) -> Customer:
    """Resolve one customer by phone and/or email.

    404 when nobody matches, 409 when phone and email point at different
    customers.
    """
    if not phone and not email:
        raise HTTPException(status_code=400, detail="phone or email is required")

    matches = await find_identity_conflicts(db, phone=phone, email=email)
    if not matches:
        raise HTTPException(status_code=404, detail="Customer not found")
    if len(matches) > 1:
        raise _conflict("Phone and email belong to different customers")
    return matches[0]


async def search_customers(
    db: AsyncSession, *, q: str, limit: int = 10
) -> list[Customer]:
    """Case-insensitive search over name, phone, email and company."""
    term = (q or "").strip()
    if len(term) < SEARCH_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail="Search query must be at least 2 characters",
        )
    limit = max(1, min(limit, SEARCH_MAX_LIMIT))

    pattern = f"%{term.lower()}%"
    clauses = [
        func.lower(Customer.name).like(pattern),
        func.lower(Customer.email).like(pattern),
        func.lower(Customer.company).like(pattern),
    ]
    digits = "".join(ch for ch in term if ch.isdigit())
    if digits:
        clauses.append(Customer.phone.like(f"%{digits}%"))

    result = await db.execute(
        select(Customer)
        .where(Customer.is_active.is_(True), or_(*clauses))
        .order_by(Customer.total_orders.desc(), Customer.name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def update_customer(
    db: AsyncSession,
    *,
    customer_id: uuid.UUID,
    data: CustomerUpdate,
    performed_by: str,
) -> Customer:
    customer = await get_customer_or_404(db, customer_id)
    update_data = data.model_dump(exclude_unset=True)
    # Required columns cannot be cleared
    for field in ("name", "phone", "customer_type", "is_active"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)

    await ensure_identity_free(
        db,
        phone=update_data.get("phone"),
        email=update_data.get("email"),
        exclude_id=customer.id,
    )

    old_value = {field: _jsonable(getattr(customer, field)) for field in update_data}
    for field, value in update_data.items():
        setattr(customer, field, value)

    try:
        await log_audit(
            db,
            AuditEntityType.CUSTOMER,
            customer.id,
            "updated",
            performed_by,
            old_value=old_value,
            new_value={k: _jsonable(v) for k, v in update_data.items()},
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _conflict("Another customer with this email or phone already exists")

    await db.refresh(customer)
    return customer


async def delete_customer(
    db: AsyncSession, *, customer_id: uuid.UUID, performed_by: str
) -> None:
    customer = await get_customer_or_404(db, customer_id)
    order_count = await db.scalar(
        select(func.count(SalesOrder.id)).where(SalesOrder.customer_id == customer.id)
    )
    if order_count:
        raise _conflict("Customer has sales orders and cannot be deleted")

    await log_audit(
        db,
        AuditEntityType.CUSTOMER,
        customer.id,
        "deleted",
        performed_by,
        old_value={"name": customer.name, "phone": customer.phone},
    )
    await db.delete(customer)
    await db.commit()
    logger.info("Deleted customer %s", customer_id)


def record_order_stats(customer: Customer, amount: Decimal) -> None:
    """Count a new order against the customer. Caller commits."""
    customer.total_orders = (customer.total_orders or 0) + 1
    customer.total_spent = to_money((customer.total_spent or 0) + amount)
    customer.last_order_date = utc_now()


def reverse_order_stats(customer: Customer, amount: Decimal) -> None:
    """Undo ``record_order_stats`` for a deleted order. Caller commits."""
    customer.total_orders = max(0, (customer.total_orders or 0) - 1)
    customer.total_spent = max(
        to_money(0), to_money((customer.total_spent or 0) - amount)
    )


def _jsonable(value):
    if value is None or isinstance(value, (str, int, bool)):
        return value
    if hasattr(value, "value"):
        return value.value
    return str(value)

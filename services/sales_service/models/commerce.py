"""Sales commerce models: customers, sales orders, delivery settings, audit logs."""

import random
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.sales_service.models.enums import (
    AuditEntityType,
    CustomerType,
    PaymentMethod,
    SalesOrderStatus,
    enum_values,
)
from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")

# ============================================================================
# CUSTOMER MODEL
# ============================================================================


class Customer(Base):
    """Cement buyers. Identity is the phone number, plus email when given."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    customer_type: Mapped[CustomerType] = mapped_column(
        SAEnum(
            CustomerType,
            values_callable=enum_values,
            name="customer_type_enum",
        ),
        default=CustomerType.INDIVIDUAL,
        server_default="individual",
    )
    preferred_delivery_address: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True
    )
    preferred_payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="payment_method_enum",
        ),
        nullable=True,
    )

    # Purchase statistics, maintained by order creation/deletion
    total_orders: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=Decimal("0"), server_default="0"
    )
    last_order_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    orders = relationship("SalesOrder", back_populates="customer")

    def __repr__(self):
        return f"<Customer {self.name} {self.phone}>"


# ============================================================================
# SALES ORDER MODELS
# ============================================================================


class SalesOrder(Base):
    """Cement sales orders created at checkout by a sales person."""

    __tablename__ = "sales_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_number: Mapped[str] = mapped_column(
        String(40), unique=True, nullable=False, index=True
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("shops.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    sales_person_id: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True
    )  # auth user id

    # Delivery surcharges, snapshotted as absolute amounts (rate × bags)
    is_delivery: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    onloading_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0"
    )
    delivery_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0"
    )
    offloading_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0"
    )

    # Items + surcharges, always computed server-side
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="payment_method_enum",
        ),
        nullable=False,
    )

    status: Mapped[SalesOrderStatus] = mapped_column(
        SAEnum(
            SalesOrderStatus,
            values_callable=enum_values,
            name="sales_order_status_enum",
        ),
        default=SalesOrderStatus.NOT_COLLECTED,
        server_default="Not Collected",
        index=True,
    )

    # Dates
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    delivery_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )  # expected
    delivered_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    collected_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    delivery_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Correction workflow
    needs_correction: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    correction_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    correction_requested_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    correction_requested_by: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )

    # Optimistic concurrency token, bumped on every UPDATE of this row
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_sales_orders_shop_id_status", "shop_id", "status"),
        Index(
            "ix_sales_orders_needs_correction_status", "needs_correction", "status"
        ),
    )

    # Relationships
    items = relationship(
        "SalesOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="SalesOrderItem.line_number",
    )
    customer = relationship("Customer", back_populates="orders")
    shop = relationship("Shop")

    @property
    def delivery_charges(self) -> Decimal:
        if not self.is_delivery:
            return Decimal("0")
        return (
            (self.onloading_cost or 0)
            + (self.delivery_cost or 0)
            + (self.offloading_cost or 0)
        )

    @property
    def total_bags(self) -> int:
        return sum(item.quantity for item in self.items)

    @staticmethod
    def generate_order_number() -> str:
        """Generate an order number like CF-20260104-A1B2C3."""
        date_part = utc_now().strftime("%Y%m%d")
        random_part = "".join(
            random.choices(string.ascii_uppercase + string.digits, k=6)
        )
        return f"CF-{date_part}-{random_part}"

    def __repr__(self):
        return f"<SalesOrder {self.order_number} status={self.status}>"


class SalesOrderItem(Base):
    """Sales order lines, priced from the catalog at order time."""

    __tablename__ = "sales_order_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sales_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    # Bags picked up so far (partial collections)
    collected_quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        CheckConstraint(
            "collected_quantity >= 0 AND collected_quantity <= quantity",
            name="valid_collected_quantity",
        ),
    )

    # Relationships
    order = relationship("SalesOrder", back_populates="items")
    product = relationship("Product")

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - (self.collected_quantity or 0)

    @property
    def is_fully_collected(self) -> bool:
        return self.remaining_quantity <= 0

    def __repr__(self):
        return f"<SalesOrderItem product={self.product_id} qty={self.quantity}>"


# ============================================================================
# DELIVERY SETTINGS MODEL
# ============================================================================


class DeliverySettings(Base):
    """Global per-bag surcharge rates applied to delivery orders (single row)."""

    __tablename__ = "delivery_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    onloading_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False
    )
    delivery_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False
    )
    offloading_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False
    )

    # Singleton guard: only one row may hold True
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, unique=True, nullable=False
    )
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return (
            f"<DeliverySettings onloading={self.onloading_cost} "
            f"delivery={self.delivery_cost} offloading={self.offloading_cost}>"
        )


# ============================================================================
# AUDIT LOG MODEL
# ============================================================================


class SalesAuditLog(Base):
    """Audit log for order lifecycle and other sensitive operations."""

    __tablename__ = "sales_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    entity_type: Mapped[AuditEntityType] = mapped_column(
        SAEnum(
            AuditEntityType,
            values_callable=enum_values,
            name="sales_audit_entity_type_enum",
        ),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    action: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # e.g. "status_changed", "correction_flagged"

    old_value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_sales_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_sales_audit_logs_performed_at", "performed_at"),
    )

    def __repr__(self):
        return f"<SalesAuditLog {self.entity_type}:{self.entity_id} {self.action}>"

"""Catalog reference models: shops and cement products.

Both tables are maintained by the catalog screens; the sales service reads
them to scope orders and to price order lines.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# SHOP MODEL
# ============================================================================


class Shop(Base):
    """A physical sales location (inventory, sales persons and orders are scoped to it)."""

    __tablename__ = "shops"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    manager_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # auth user id of the shop manager

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
    inventory_items = relationship("InventoryItem", back_populates="shop")

    def __repr__(self):
        return f"<Shop {self.name}>"


# ============================================================================
# PRODUCT MODEL
# ============================================================================


class Product(Base):
    """A cement product sold by the bag (e.g. 'Dangote 3X 42.5R, 50kg')."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    variant: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )  # grade, e.g. "42.5R"
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False)  # kg per bag

    # Current price per bag
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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
    inventory_items = relationship("InventoryItem", back_populates="product")

    @property
    def display_name(self) -> str:
        parts = [self.brand, self.name, self.variant]
        return " ".join(p for p in parts if p)

    def __repr__(self):
        return f"<Product {self.name} {self.size}kg>"

"""Pydantic schemas for sales service."""

import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from services.sales_service.models import (
    CustomerType,
    PaymentMethod,
    SalesOrderStatus,
)

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _clean_optional(value: Optional[str]) -> Optional[str]:
    """Trim, and turn blank strings into None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _clean_email(value: Optional[str]) -> Optional[str]:
    value = _clean_optional(value)
    if value is None:
        return None
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value.lower()


def _clean_phone(value: Optional[str]) -> Optional[str]:
    value = _clean_optional(value)
    if value is None:
        return None
    if not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number")
    return value


class Envelope(BaseModel):
    """Common response envelope."""

    success: bool = True
    message: Optional[str] = None


# ============================================================================
# CATALOG SCHEMAS
# ============================================================================


class ShopSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    address: str
    phone: str


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    variant: Optional[str] = None
    brand: Optional[str] = None
    size: int
    price: Decimal
    image_url: Optional[str] = None


# ============================================================================
# CUSTOMER SCHEMAS
# ============================================================================


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    company: Optional[str] = Field(None, max_length=255)
    customer_type: CustomerType = CustomerType.INDIVIDUAL
    preferred_delivery_address: Optional[str] = Field(None, max_length=500)
    preferred_payment_method: Optional[PaymentMethod] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        value = _clean_phone(value)
        if value is None:
            raise ValueError("Phone number is required")
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        return _clean_email(value)

    @field_validator("address", "company", "preferred_delivery_address")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _clean_optional(value)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    company: Optional[str] = Field(None, max_length=255)
    customer_type: Optional[CustomerType] = None
    preferred_delivery_address: Optional[str] = Field(None, max_length=500)
    preferred_payment_method: Optional[PaymentMethod] = None
    is_active: Optional[bool] = None

    @field_validator("name", "address", "company", "preferred_delivery_address")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _clean_optional(value)

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        return _clean_phone(value)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        return _clean_email(value)


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    phone: str
    email: Optional[str]
    address: Optional[str]
    company: Optional[str]
    customer_type: CustomerType
    preferred_delivery_address: Optional[str]
    preferred_payment_method: Optional[PaymentMethod]
    total_orders: int
    total_spent: Decimal
    last_order_date: Optional[datetime]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CustomerEnvelope(Envelope):
    customer: CustomerResponse


class CustomerListEnvelope(Envelope):
    customers: list[CustomerResponse]
    total: Optional[int] = None
    page: Optional[int] = None
    page_size: Optional[int] = None


# ============================================================================
# SALES ORDER SCHEMAS
# ============================================================================


class SalesOrderItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)  # advisory, catalog wins


class SalesOrderCreate(BaseModel):
    """Create a sales order at checkout (sales person)."""

    order_number: Optional[str] = Field(None, max_length=40)  # generated if omitted
    customer_id: uuid.UUID
    shop_id: uuid.UUID
    items: list[SalesOrderItemCreate] = Field(..., min_length=1)
    payment_method: PaymentMethod
    is_delivery: bool = False
    delivery_date: Optional[datetime] = None
    delivery_address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    status: SalesOrderStatus = SalesOrderStatus.NOT_COLLECTED
    total_amount: Optional[Decimal] = Field(None, ge=0)  # advisory preview

    @field_validator("order_number")
    @classmethod
    def _strip_order_number(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("order_number must be a non-empty string")
        return value

    @field_validator("delivery_address", "notes")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _clean_optional(value)

    @field_validator("status")
    @classmethod
    def _initial_status(cls, value: SalesOrderStatus) -> SalesOrderStatus:
        if value == SalesOrderStatus.PENDING_CORRECTION:
            raise ValueError("New orders must be 'Not Collected' or 'Collected'")
        return value

    @model_validator(mode="after")
    def _unique_products(self):
        product_ids = [item.product_id for item in self.items]
        if len(set(product_ids)) != len(product_ids):
            raise ValueError("Each product may appear only once per order")
        return self


class SalesOrderStatusUpdate(BaseModel):
    status: SalesOrderStatus
    correction_notes: Optional[str] = None
    expected_version: Optional[int] = None


class CollectionEntry(BaseModel):
    product_id: uuid.UUID
    quantity_collected: int = Field(..., gt=0)


class PartialCollectionRequest(BaseModel):
    collections: list[CollectionEntry] = Field(..., min_length=1)
    expected_version: Optional[int] = None


class FlagCorrectionRequest(BaseModel):
    correction_notes: str = ""
    expected_version: Optional[int] = None


class CorrectionItem(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)


class ResolveCorrectionRequest(BaseModel):
    """Admin resolution of a flagged order."""

    status: SalesOrderStatus = SalesOrderStatus.NOT_COLLECTED
    items: Optional[list[CorrectionItem]] = None
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_email: Optional[str] = Field(None, max_length=255)
    payment_method: Optional[PaymentMethod] = None
    delivery_address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    expected_version: Optional[int] = None

    @field_validator("customer_name", "delivery_address", "notes")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _clean_optional(value)

    @field_validator("customer_phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        return _clean_phone(value)

    @field_validator("customer_email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        return _clean_email(value)

    @field_validator("status")
    @classmethod
    def _target_status(cls, value: SalesOrderStatus) -> SalesOrderStatus:
        if value == SalesOrderStatus.PENDING_CORRECTION:
            raise ValueError("Resolved orders must be 'Not Collected' or 'Collected'")
        return value

    @field_validator("items")
    @classmethod
    def _non_empty_unique_items(cls, value):
        if value is None:
            return value
        if not value:
            raise ValueError("items must contain at least one item")
        product_ids = [item.product_id for item in value]
        if len(set(product_ids)) != len(product_ids):
            raise ValueError("Each product may appear only once per order")
        return value


class SalesOrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    line_number: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    collected_quantity: int
    remaining_quantity: int
    product: Optional[ProductSummary] = None


class SalesOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    shop_id: uuid.UUID
    sales_person_id: str

    is_delivery: bool
    onloading_cost: Decimal
    delivery_cost: Decimal
    offloading_cost: Decimal
    total_amount: Decimal
    payment_method: PaymentMethod
    status: SalesOrderStatus

    order_date: datetime
    delivery_date: Optional[datetime]
    delivered_date: Optional[datetime]
    collected_date: Optional[datetime]
    delivery_address: Optional[str]
    notes: Optional[str]

    needs_correction: bool
    correction_notes: Optional[str]
    correction_requested_at: Optional[datetime]
    correction_requested_by: Optional[str]

    version: int
    created_at: datetime
    updated_at: datetime

    items: list[SalesOrderItemResponse] = []
    customer: Optional[CustomerResponse] = None
    shop: Optional[ShopSummary] = None


class SalesOrderEnvelope(Envelope):
    order: SalesOrderResponse


class PartialCollectionEnvelope(SalesOrderEnvelope):
    all_items_collected: bool


class SalesOrderListEnvelope(Envelope):
    orders: list[SalesOrderResponse]
    total: int
    page: Optional[int] = None
    page_size: Optional[int] = None


class NotCollectedEnvelope(Envelope):
    orders: list[SalesOrderResponse]
    total_count: int
    total_bags: int
    total_value: Decimal


# ============================================================================
# DELIVERY SETTINGS SCHEMAS
# ============================================================================


class DeliverySettingsUpdate(BaseModel):
    onloading_cost: Optional[Decimal] = Field(None, ge=0)
    delivery_cost: Optional[Decimal] = Field(None, ge=0)
    offloading_cost: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def _at_least_one(self):
        if (
            self.onloading_cost is None
            and self.delivery_cost is None
            and self.offloading_cost is None
        ):
            raise ValueError("At least one cost field must be provided")
        return self


class DeliverySettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    onloading_cost: Decimal
    delivery_cost: Decimal
    offloading_cost: Decimal
    updated_by: Optional[str]
    created_at: datetime
    updated_at: datetime


class DeliverySettingsEnvelope(Envelope):
    settings: DeliverySettingsResponse

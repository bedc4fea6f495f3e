"""create_sales_tables

Revision ID: 0001_create_sales_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_create_sales_tables"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

customer_type_enum = postgresql.ENUM(
    "individual", "business", "contractor", name="customer_type_enum", create_type=False
)
payment_method_enum = postgresql.ENUM(
    "cash", "pos", "transfer", name="payment_method_enum", create_type=False
)
sales_order_status_enum = postgresql.ENUM(
    "Not Collected",
    "Collected",
    "Pending Correction",
    name="sales_order_status_enum",
    create_type=False,
)
inventory_movement_type_enum = postgresql.ENUM(
    "restock",
    "sale",
    "return",
    "adjustment",
    name="inventory_movement_type_enum",
    create_type=False,
)
sales_audit_entity_type_enum = postgresql.ENUM(
    "sales_order",
    "customer",
    "inventory",
    "settings",
    name="sales_audit_entity_type_enum",
    create_type=False,
)

ENUMS = (
    customer_type_enum,
    payment_method_enum,
    sales_order_status_enum,
    inventory_movement_type_enum,
    sales_audit_entity_type_enum,
)


def upgrade() -> None:
    """Upgrade schema - Add shops, catalog, inventory, customers and sales orders."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "shops",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("manager_id", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_shops"),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("variant", sa.String(100), nullable=True),
        sa.Column("brand", sa.String(100), nullable=True),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_products"),
    )

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("min_stock_level", sa.Integer(), server_default="10", nullable=True),
        sa.Column("max_stock_level", sa.Integer(), server_default="1000", nullable=True),
        sa.Column("last_restocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sold_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_items_non_negative_stock"),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["products.id"],
            name="fk_inventory_items_product_id_products",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["shop_id"],
            ["shops.id"],
            name="fk_inventory_items_shop_id_shops",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_inventory_items"),
        sa.UniqueConstraint("product_id", "shop_id", name="unique_product_shop"),
    )
    op.create_index("ix_inventory_items_product_id", "inventory_items", ["product_id"])
    op.create_index("ix_inventory_items_shop_id", "inventory_items", ["shop_id"])

    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("inventory_item_id", sa.Uuid(), nullable=False),
        sa.Column("movement_type", inventory_movement_type_enum, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(30), nullable=True),
        sa.Column("reference_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["inventory_item_id"],
            ["inventory_items.id"],
            name="fk_inventory_movements_inventory_item_id_inventory_items",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_inventory_movements"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("company", sa.String(255), nullable=True),
        sa.Column(
            "customer_type",
            customer_type_enum,
            server_default="individual",
            nullable=True,
        ),
        sa.Column("preferred_delivery_address", sa.String(500), nullable=True),
        sa.Column("preferred_payment_method", payment_method_enum, nullable=True),
        sa.Column("total_orders", sa.Integer(), server_default="0", nullable=True),
        sa.Column("total_spent", sa.Numeric(14, 2), server_default="0", nullable=True),
        sa.Column("last_order_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_customers"),
        sa.UniqueConstraint("phone", name="uq_customers_phone"),
        sa.UniqueConstraint("email", name="uq_customers_email"),
    )

    op.create_table(
        "sales_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(40), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("sales_person_id", sa.String(255), nullable=False),
        sa.Column("is_delivery", sa.Boolean(), server_default="false", nullable=True),
        sa.Column("onloading_cost", sa.Numeric(12, 2), server_default="0", nullable=True),
        sa.Column("delivery_cost", sa.Numeric(12, 2), server_default="0", nullable=True),
        sa.Column("offloading_cost", sa.Numeric(12, 2), server_default="0", nullable=True),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_method", payment_method_enum, nullable=False),
        sa.Column(
            "status",
            sales_order_status_enum,
            server_default="Not Collected",
            nullable=True,
        ),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("collected_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_address", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("needs_correction", sa.Boolean(), server_default="false", nullable=True),
        sa.Column("correction_notes", sa.Text(), nullable=True),
        sa.Column("correction_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("correction_requested_by", sa.String(255), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["customers.id"],
            name="fk_sales_orders_customer_id_customers",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["shop_id"],
            ["shops.id"],
            name="fk_sales_orders_shop_id_shops",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sales_orders"),
    )
    op.create_index(
        "ix_sales_orders_order_number", "sales_orders", ["order_number"], unique=True
    )
    op.create_index("ix_sales_orders_customer_id", "sales_orders", ["customer_id"])
    op.create_index("ix_sales_orders_shop_id", "sales_orders", ["shop_id"])
    op.create_index(
        "ix_sales_orders_sales_person_id", "sales_orders", ["sales_person_id"]
    )
    op.create_index("ix_sales_orders_status", "sales_orders", ["status"])
    op.create_index(
        "ix_sales_orders_shop_id_status", "sales_orders", ["shop_id", "status"]
    )
    op.create_index(
        "ix_sales_orders_needs_correction_status",
        "sales_orders",
        ["needs_correction", "status"],
    )

    op.create_table(
        "sales_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("collected_quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_sales_order_items_positive_quantity"),
        sa.CheckConstraint(
            "collected_quantity >= 0 AND collected_quantity <= quantity",
            name="ck_sales_order_items_valid_collected_quantity",
        ),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["sales_orders.id"],
            name="fk_sales_order_items_order_id_sales_orders",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["products.id"],
            name="fk_sales_order_items_product_id_products",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sales_order_items"),
    )

    op.create_table(
        "delivery_settings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("onloading_cost", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("delivery_cost", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("offloading_cost", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("updated_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_delivery_settings"),
        sa.UniqueConstraint("is_active", name="uq_delivery_settings_is_active"),
    )

    op.create_table(
        "sales_audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sales_audit_entity_type_enum, nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("old_value", postgresql.JSONB(), nullable=True),
        sa.Column("new_value", postgresql.JSONB(), nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=False),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_sales_audit_logs"),
    )
    op.create_index(
        "ix_sales_audit_logs_entity", "sales_audit_logs", ["entity_type", "entity_id"]
    )
    op.create_index(
        "ix_sales_audit_logs_performed_at", "sales_audit_logs", ["performed_at"]
    )


def downgrade() -> None:
    """Downgrade schema - Drop sales tables."""
    op.drop_index("ix_sales_audit_logs_performed_at", table_name="sales_audit_logs")
    op.drop_index("ix_sales_audit_logs_entity", table_name="sales_audit_logs")
    op.drop_table("sales_audit_logs")
    op.drop_table("delivery_settings")
    op.drop_table("sales_order_items")
    for index in (
        "ix_sales_orders_needs_correction_status",
        "ix_sales_orders_shop_id_status",
        "ix_sales_orders_status",
        "ix_sales_orders_sales_person_id",
        "ix_sales_orders_shop_id",
        "ix_sales_orders_customer_id",
        "ix_sales_orders_order_number",
    ):
        op.drop_index(index, table_name="sales_orders")
    op.drop_table("sales_orders")
    op.drop_table("customers")
    op.drop_table("inventory_movements")
    op.drop_index("ix_inventory_items_shop_id", table_name="inventory_items")
    op.drop_index("ix_inventory_items_product_id", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_table("products")
    op.drop_table("shops")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)

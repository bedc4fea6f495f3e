"""Seed script for sales test data.

Creates shops, cement products, per-shop inventory, delivery rates and a
couple of customers so you can run a checkout end-to-end. Prints a sales
person and an admin token for the first shop.

Usage:
    cd cement-sales-backend
    python -m services.sales_service.seed_sales_data
"""

import asyncio
from decimal import Decimal

from libs.auth.dependencies import create_access_token
from libs.auth.models import AuthUser
from libs.db.config import AsyncSessionLocal
from services.sales_service.models import (
    Customer,
    CustomerType,
    DeliverySettings,
    InventoryItem,
    PaymentMethod,
    Product,
    Shop,
)
from sqlalchemy import func, select


async def seed_sales_data():
    async with AsyncSessionLocal() as db:
        print("Seeding sales data...")

        # Check if data already exists
        count = await db.scalar(select(func.count(Shop.id)))
        if count:
            print(f"Sales data already exists ({count} shops). Skipping seed.")
            return

        # =========================================================================
        # 1. SHOPS
        # =========================================================================
        shops = [
            Shop(
                name="Ikeja Depot",
                address="12 Obafemi Awolowo Way, Ikeja, Lagos",
                phone="+234 801 000 0001",
            ),
            Shop(
                name="Apapa Yard",
                address="4 Wharf Road, Apapa, Lagos",
                phone="+234 801 000 0002",
            ),
        ]
        db.add_all(shops)

        # =========================================================================
        # 2. PRODUCTS
        # =========================================================================
        products = [
            Product(
                name="Dangote Cement",
                brand="Dangote",
                variant="3X",
                size=50,
                price=Decimal("5000.00"),
            ),
            Product(
                name="BUA Cement",
                brand="BUA",
                variant="42.5R",
                size=50,
                price=Decimal("6500.00"),
            ),
            Product(
                name="Lafarge Elephant",
                brand="Lafarge",
                variant="Supaset",
                size=50,
                price=Decimal("5800.00"),
            ),
        ]
        db.add_all(products)
        await db.flush()

        # =========================================================================
        # 3. INVENTORY
        # =========================================================================
        stock_levels = {"Ikeja Depot": 200, "Apapa Yard": 80}
        inventory = [
            InventoryItem(
                product_id=product.id,
                shop_id=shop.id,
                quantity=stock_levels[shop.name],
            )
            for shop in shops
            for product in products
        ]
        db.add_all(inventory)

        # =========================================================================
        # 4. DELIVERY RATES (per bag)
        # =========================================================================
        db.add(
            DeliverySettings(
                onloading_cost=Decimal("50.00"),
                delivery_cost=Decimal("150.00"),
                offloading_cost=Decimal("50.00"),
                is_active=True,
                updated_by="seed",
            )
        )

        # =========================================================================
        # 5. CUSTOMERS
        # =========================================================================
        customers = [
            Customer(
                name="Ada Obi",
                phone="+2348030000001",
                email="ada@example.com",
                customer_type=CustomerType.INDIVIDUAL,
                preferred_payment_method=PaymentMethod.CASH,
            ),
            Customer(
                name="Okeke Builders Ltd",
                phone="+2348050000002",
                company="Okeke Builders",
                customer_type=CustomerType.CONTRACTOR,
                preferred_payment_method=PaymentMethod.TRANSFER,
            ),
        ]
        db.add_all(customers)

        await db.commit()

        sales_token = create_access_token(
            AuthUser(user_id="seed-sales-1", role="salesPerson", shop_id=str(shops[0].id))
        )
        admin_token = create_access_token(AuthUser(user_id="seed-admin-1", role="admin"))

        print("=" * 60)
        print("Sales data seeded successfully!")
        print("=" * 60)
        print(f"  Shops: {len(shops)}")
        print(f"  Products: {len(products)}")
        print(f"  Inventory rows: {len(inventory)}")
        print(f"  Customers: {len(customers)}")
        print(f"  Sales person token ({shops[0].name}): {sales_token}")
        print(f"  Admin token: {admin_token}")
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(seed_sales_data())

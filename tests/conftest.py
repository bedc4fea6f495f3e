from contextlib import contextmanager
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db

# Import all models so metadata includes every table
from services.sales_service import models as _sales_models  # noqa: F401
from tests.factories import (
    CustomerFactory,
    InventoryItemFactory,
    ProductFactory,
    ShopFactory,
)

settings = get_settings()


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_sales_user(shop_id=None, **overrides) -> AuthUser:
    defaults = {
        "user_id": "sales-user-1",
        "role": "salesPerson",
        "shop_id": str(shop_id) if shop_id else None,
        "email": "sales@cementflow.test",
    }
    defaults.update(overrides)
    return AuthUser(**defaults)


def make_admin_user(**overrides) -> AuthUser:
    defaults = {
        "user_id": "admin-user-1",
        "role": "admin",
        "email": "admin@cementflow.test",
    }
    defaults.update(overrides)
    return AuthUser(**defaults)


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily authenticate requests to ``app`` as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """
    Create a fresh schema per test.
    In-memory SQLite by default; a .env.test DATABASE_URL points it elsewhere.
    """
    if settings.is_sqlite:
        engine = create_async_engine(
            settings.DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(settings.DATABASE_URL, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session shared by the test body and every request it makes."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def shop(db_session):
    shop = ShopFactory.create(name="Ikeja Depot")
    db_session.add(shop)
    await db_session.commit()
    return shop


@pytest_asyncio.fixture
async def products(db_session):
    """Two active bag products: 5000 and 6500 naira."""
    dangote = ProductFactory.create(
        name="Dangote Cement", variant="3X", price=Decimal("5000.00")
    )
    bua = ProductFactory.create(
        name="BUA Cement", variant="42.5R", price=Decimal("6500.00")
    )
    db_session.add_all([dangote, bua])
    await db_session.commit()
    return [dangote, bua]


@pytest_asyncio.fixture
async def inventory(db_session, shop, products):
    """Ten bags of each product in ``shop``, keyed by product id."""
    rows = [
        InventoryItemFactory.create(product_id=product.id, shop_id=shop.id, quantity=10)
        for product in products
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return {row.product_id: row for row in rows}


@pytest_asyncio.fixture
async def customer(db_session):
    customer = CustomerFactory.create(name="Ada Obi", phone="+2348030000001")
    db_session.add(customer)
    await db_session.commit()
    return customer


@pytest.fixture
def sales_user(shop) -> AuthUser:
    return make_sales_user(shop_id=shop.id)


@pytest.fixture
def admin_user() -> AuthUser:
    return make_admin_user()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(db_session, sales_user) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the sales app, authenticated as the
    shop's sales person. Use ``override_auth`` to switch users.
    """
    from services.sales_service.app.main import app

    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: sales_user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anon_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with the real auth dependency (cookie or bearer token)."""
    from services.sales_service.app.main import app

    app.dependency_overrides[get_async_db] = lambda: db_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

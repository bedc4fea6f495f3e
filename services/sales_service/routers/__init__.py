"""Sales service routers package."""

from services.sales_service.routers.customers import router as customers_router
from services.sales_service.routers.sales_orders import router as sales_orders_router
from services.sales_service.routers.settings import router as settings_router

__all__ = [
    "customers_router",
    "sales_orders_router",
    "settings_router",
]

"""FastAPI application for the Sales Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.sales_service.routers import (
    customers_router,
    sales_orders_router,
    settings_router,
)


def create_app() -> FastAPI:
    """Create and configure the Sales Service FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Cementflow Sales Service",
        version="0.1.0",
        description="Checkout, sales orders, collection tracking and corrections.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    # {success, message} envelope for every error
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "sales"}

    app.include_router(sales_orders_router)
    app.include_router(customers_router)
    app.include_router(settings_router)

    return app


app = create_app()

"""FastAPI application for the Store Service."""

from fastapi import FastAPI
from libs.common.errors import register_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import install_rate_limiting
from services.store_service.routers import (
    admin_orders_router,
    cart_router,
    orders_router,
    payments_router,
    shipping_router,
)


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    app = FastAPI(
        title="Kashmir Attar Store Service",
        version="0.1.0",
        description="Store backend - shipping quotes, cart, orders and Razorpay payments.",
    )

    add_observability_middleware(app)
    register_exception_handlers(app)
    install_rate_limiting(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Public routes
    app.include_router(shipping_router)

    # Customer routes (bearer token)
    app.include_router(cart_router)
    app.include_router(orders_router)
    app.include_router(payments_router)

    # Admin / seller routes
    app.include_router(admin_orders_router)

    return app


app = create_app()

# shopcore/main.py
from fastapi import FastAPI
import uvicorn

from shopcore.data.database import Base, engine
from shopcore.api.routers import carts, checkout, orders, payments, webhooks, held_sales, health
from shopcore.services.gateways import GatewayRegistry, build_default_registry
from shopcore.utils.logging import get_logger

# IMPORT WSZYSTKICH MODELI PRZED CREATE_ALL
import shopcore.data.models  # noqa: F401

logger = get_logger(__name__)


def init_db(bind=engine):
    logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=bind)
        logger.info("Database tables created")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


def create_app(registry: GatewayRegistry | None = None, create_tables: bool = True) -> FastAPI:
    if create_tables:
        init_db()

    app = FastAPI(
        title="Shop Checkout Service",
        version="1.0.0",
    )
    # bramki budowane raz, z konfiguracji z env
    app.state.gateway_registry = registry or build_default_registry()

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(webhooks.router)
    app.include_router(held_sales.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)

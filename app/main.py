import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import create_db_and_tables
from app.exceptions import register_exception_handlers
from app.routes import (
    admin_orders,
    cart,
    checkout,
    dev,
    health,
    user_orders,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    if settings.mock_orders_enabled:
        logger.warning("Mock orders are enabled: /dev/mock-order skips payment")
    yield

app = FastAPI(title="Bookstore Checkout API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(user_orders.router, prefix="/orders", tags=["User Orders"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(dev.router, prefix="/dev", tags=["Development"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "cart": [
            "/cart", "/cart/add", "/cart/update/{id}",
            "/cart/remove/{id}", "/cart/clear"
        ],
        "checkout": [
            "/checkout/create-intent", "/checkout/verify"
        ],
        "orders": [
            "/orders", "/orders/{order_id}", "/orders/{order_id}/invoice/download"
        ],
        "admin_orders": [
            "/admin/orders", "/admin/orders/{order_id}",
            "/admin/orders/{order_id}/export", "/admin/orders/status"
        ],
    }

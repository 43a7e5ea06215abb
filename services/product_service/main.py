from fastapi import FastAPI

from shared.errors import register_exception_handlers
from .router import router, public_router, internal_router
from .models import Product  # noqa: F401 registers model with SQLAlchemy Base

product_app = FastAPI(
    title="Product Service",
    version="1.0.0"
)

register_exception_handlers(product_app)

product_app.include_router(public_router)
product_app.include_router(internal_router)
product_app.include_router(router)

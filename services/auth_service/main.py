from fastapi import FastAPI

from shared.errors import register_exception_handlers
from .router import public_router, router
from .models import User  # noqa: F401 registers model with SQLAlchemy Base

auth_app = FastAPI(
    title="Auth Service",
    version="1.0.0",
    description="Customer and seller accounts, bearer tokens.",
)
register_exception_handlers(auth_app)

auth_app.include_router(public_router)
auth_app.include_router(router)

from fastapi import FastAPI

from shared.errors import register_exception_handlers
from .router import admin_router, public_router, router

seller_app = FastAPI(
    title="Seller Service",
    version="1.0.0",
    description="Seller onboarding status and the seller dashboard.",
)
register_exception_handlers(seller_app)
seller_app.include_router(public_router)
seller_app.include_router(router)

admin_app = FastAPI(
    title="Admin Service",
    version="1.0.0",
    description="Seller review and platform statistics.",
)
register_exception_handlers(admin_app)
admin_app.include_router(public_router)
admin_app.include_router(admin_router)

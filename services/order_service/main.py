from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.errors import register_exception_handlers
from shared.security import limiter
from .router import router, public_router
from .models import Order  # noqa: F401 registers model with SQLAlchemy Base

order_app = FastAPI(title="Order Service", version="1.0.0")

# Attach the limiter so checkout retries are throttled per user
order_app.state.limiter = limiter
order_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_exception_handlers(order_app)

order_app.include_router(public_router)
order_app.include_router(router)

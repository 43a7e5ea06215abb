from fastapi import FastAPI

from shared.config.database import engine, Base
from shared.observability import setup_observability

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models
from services.product_service import models as product_models
from services.order_service import models as order_models

from services.auth_service.main import auth_app
from services.product_service.main import product_app
from services.order_service.main import order_app
from services.seller_service.main import seller_app, admin_app

app = FastAPI(title="Marketplace Cluster")

# Once, on the root app: middleware and /metrics cover every mounted service
setup_observability(app, "marketplace")

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

app.mount("/auth", auth_app)
app.mount("/products", product_app)
app.mount("/orders", order_app)
app.mount("/seller", seller_app)
app.mount("/admin", admin_app)

import itertools
import os
import tempfile
from types import SimpleNamespace

# Configuration is read at import time, so the environment must be in place first
_DB_DIR = tempfile.mkdtemp(prefix="marketplace-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["OTEL_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import httpx
import pytest
from sqlalchemy import select

from main import app
from services.auth_service.models import User
from services.order_service.schemas import OrderCreate
from services.product_service.models import Product
from shared.config.database import AsyncSessionLocal, Base, engine
from shared.security import Caller, create_access_token

INTERNAL_API_KEY = "test-internal-key"

SHIPPING_ADDRESS = {
    "street": "12 Market Street",
    "city": "Springfield",
    "state": "IL",
    "country": "US",
    "zip_code": "62701",
    "phone": "+1-555-0100",
}


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as session:
        yield session
    # Pooled aiosqlite connections must not outlive this test's event loop
    await engine.dispose()


@pytest.fixture
async def client(db):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    async def _make(role="customer", approval_status="approved", **fields):
        n = next(counter)
        fields.setdefault("name", f"{role.title()} {n}")
        user = User(
            email=f"{role}{n}@example.com",
            hashed_password="unused",
            role=role,
            approval_status=approval_status,
            business_name=f"Shop {n}" if role == "seller" else None,
            **fields,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    async def _make(owner, price=20.0, stock=10, discount_price=None, is_active=True, name=None):
        product = Product(
            owner_id=owner.id,
            name=name or f"Product of {owner.id}",
            price=price,
            discount_price=discount_price,
            stock=stock,
            is_active=is_active,
        )
        db.add(product)
        await db.commit()
        return product

    return _make


@pytest.fixture
async def shop(make_user, make_product):
    """An approved seller with one product, a buyer and an admin, as plain callers and ids."""
    seller = await make_user(role="seller")
    buyer = await make_user()
    admin = await make_user(role="admin")
    product = await make_product(seller, price=20.0, stock=10)
    return SimpleNamespace(
        seller=caller_for(seller),
        buyer=caller_for(buyer),
        admin=caller_for(admin),
        product_id=product.id,
    )


def caller_for(user) -> Caller:
    return Caller(id=user.id, role=user.role)


def auth_headers(user) -> dict:
    """Accepts a User row or a Caller."""
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


def order_payload(*lines) -> OrderCreate:
    """lines: (product_id, quantity) pairs."""
    return OrderCreate(
        items=[{"product_id": pid, "quantity": qty} for pid, qty in lines],
        shipping_address=SHIPPING_ADDRESS,
    )


async def stock_of(db, product_id: int) -> int:
    result = await db.execute(select(Product.stock).where(Product.id == product_id))
    return result.scalar_one()

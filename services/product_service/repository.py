from typing import Dict, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User

from .models import Product


def _on_sale(stmt):
    """Only products whose owner is an active, approved seller are visible or sellable."""
    return stmt.join(User, User.id == Product.owner_id).where(
        User.approval_status == "approved",
        User.is_active.is_(True),
    )


class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        return product

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(_on_sale(select(Product)).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def lock_products(db: AsyncSession, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Row-lock the products in id order so concurrent batches can't deadlock."""
        ids = sorted(set(product_ids))
        result = await db.execute(
            _on_sale(select(Product))
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update(of=Product)
            .execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}

    @staticmethod
    async def decrement_stock(db: AsyncSession, product_id: int, quantity: int) -> bool:
        """Conditional decrement; False when the stock floor would be crossed."""
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
        )
        return result.rowcount == 1

    @staticmethod
    async def increment_stock(db: AsyncSession, product_id: int, quantity: int) -> bool:
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
        )
        return result.rowcount == 1

    @staticmethod
    async def get_stock_levels(db: AsyncSession, product_ids: Iterable[int]) -> Dict[int, int]:
        result = await db.execute(
            select(Product.id, Product.stock).where(Product.id.in_(sorted(set(product_ids))))
        )
        return {row.id: row.stock for row in result.all()}

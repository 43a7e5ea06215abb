from typing import List, Optional

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import Order, OrderItem
from services.product_service.models import Product

from .models import User


class UserRepository:

    @staticmethod
    async def add(db: AsyncSession, user: User) -> User:
        db.add(user)
        await db.commit()
        return user

    @staticmethod
    async def get(db: AsyncSession, user_id: int) -> Optional[User]:
        return await db.get(User, user_id)

    @staticmethod
    async def get_for_update(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Emails are matched case-insensitively: Foo@x.com and foo@x.com are one account."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        return result.scalars().first()

    @staticmethod
    async def list_users(db: AsyncSession, role: Optional[str] = None, search: Optional[str] = None) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc(), User.id.desc())
        if role:
            stmt = stmt.where(User.role == role)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_admins(db: AsyncSession, exclude_id: int, active_only: bool = False) -> int:
        stmt = select(func.count(User.id)).where(User.role == "admin", User.id != exclude_id)
        if active_only:
            stmt = stmt.where(User.is_active.is_(True))
        return (await db.execute(stmt)).scalar_one()

    @staticmethod
    async def has_order_history(db: AsyncSession, user_id: int) -> bool:
        stmt = select(
            or_(
                exists().where(Order.buyer_id == user_id),
                exists().where(OrderItem.seller_id == user_id),
            )
        )
        return bool((await db.execute(stmt)).scalar())

    @staticmethod
    async def delete_with_products(db: AsyncSession, user: User) -> None:
        await db.execute(delete(Product).where(Product.owner_id == user.id))
        await db.delete(user)

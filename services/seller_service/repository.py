from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User


class SellerRepository:

    @staticmethod
    async def get_seller(db: AsyncSession, seller_id: int, for_update: bool = False) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.id == seller_id, User.role == "seller")
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def list_sellers(db: AsyncSession, approval_status: Optional[str] = None) -> List[User]:
        stmt = select(User).where(User.role == "seller").order_by(User.created_at, User.id)
        if approval_status:
            stmt = stmt.where(User.approval_status == approval_status)
        result = await db.execute(stmt)
        return list(result.scalars().all())

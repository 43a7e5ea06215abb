"""
Single choke point for "may this caller do this to that resource".

Roles map to capability sets once per request; ownership and the seller
approval gate are resolved here and nowhere else. The approval flag and the
account's active flag are always read from the database, never trusted from
the token or the client.
"""
from typing import Iterable, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from shared.config.database import get_db
from shared.errors import Forbidden, NotFound
from shared.security import get_current_user
from shared.security.caller import ADMIN, CUSTOMER, SELLER, Caller

from .repository import SellerRepository
from .schemas import ApprovalStatusResponse

ORDER_CREATE = "order:create"
ORDER_READ = "order:read"
ORDER_CANCEL = "order:cancel"
ORDER_TRANSITION = "order:transition"
PAYMENT_UPDATE = "payment:update"
PRODUCT_CREATE = "product:create"
SELLER_STATUS = "seller:status"
SELLER_RESUBMIT = "seller:resubmit"
SELLER_DASHBOARD = "seller:dashboard"
SELLER_REVIEW = "seller:review"
PLATFORM_STATS = "platform:stats"
USER_MANAGE = "user:manage"

CAPABILITIES = {
    CUSTOMER: frozenset({ORDER_CREATE, ORDER_READ, ORDER_CANCEL}),
    SELLER: frozenset({
        ORDER_READ,
        ORDER_TRANSITION,
        PAYMENT_UPDATE,
        PRODUCT_CREATE,
        SELLER_STATUS,
        SELLER_RESUBMIT,
        SELLER_DASHBOARD,
    }),
    ADMIN: frozenset({
        ORDER_READ,
        ORDER_TRANSITION,
        PAYMENT_UPDATE,
        PRODUCT_CREATE,
        SELLER_REVIEW,
        PLATFORM_STATS,
        USER_MANAGE,
    }),
}


class AccessControl:

    @staticmethod
    def require(caller: Caller, capability: str) -> None:
        if capability not in CAPABILITIES.get(caller.role, frozenset()):
            raise Forbidden(f"Role '{caller.role}' is not allowed to perform '{capability}'")

    @staticmethod
    async def require_active(db: AsyncSession, caller: Caller) -> None:
        """Deactivated or deleted accounts are refused even with an unexpired token."""
        result = await db.execute(select(User.is_active).where(User.id == caller.id))
        if not result.scalar_one_or_none():
            raise Forbidden("Account is disabled")

    @staticmethod
    async def require_approved_seller(db: AsyncSession, caller: Caller) -> ApprovalStatusResponse:
        seller = await SellerRepository.get_seller(db, caller.id)
        if seller is None:
            raise NotFound(f"Seller {caller.id} not found")
        if not seller.is_active:
            raise Forbidden("Account is disabled")
        approval = ApprovalStatusResponse.of(seller)
        if not approval.is_approved:
            raise Forbidden("Seller account is not approved", **approval.model_dump())
        return approval

    @staticmethod
    async def authorize(
        db: AsyncSession,
        caller: Caller,
        resource_owner_id: Optional[int],
        require_approval: bool = False,
    ) -> None:
        if caller.role == ADMIN:
            return

        if caller.role == SELLER:
            # Unapproved sellers are refused before ownership is even considered
            if require_approval:
                await AccessControl.require_approved_seller(db, caller)
            if resource_owner_id is not None and caller.id == resource_owner_id:
                return
            raise Forbidden("You don't have permission to access this resource")

        if caller.role == CUSTOMER and not require_approval:
            if resource_owner_id is not None and caller.id == resource_owner_id:
                return

        raise Forbidden("You don't have permission to access this resource")

    @staticmethod
    async def authorize_many(
        db: AsyncSession,
        caller: Caller,
        owner_ids: Iterable[int],
        require_approval: bool = False,
    ) -> None:
        """Every owner must pass: a multi-seller order can only be moved by an admin."""
        if caller.role == ADMIN:
            return

        owners = set(owner_ids)
        if caller.role == SELLER and require_approval:
            await AccessControl.require_approved_seller(db, caller)
        if not owners:
            raise Forbidden("You don't have permission to access this resource")
        for owner_id in owners:
            await AccessControl.authorize(db, caller, owner_id)


async def current_caller(
    caller: Caller = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    await AccessControl.require_active(db, caller)
    return caller

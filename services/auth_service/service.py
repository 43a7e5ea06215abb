"""
Account registration, token issuance and admin-side account management.

Registration is where a seller's onboarding starts: the account is created in
the 'pending' approval state and stays gated until an admin reviews it.
"""
from typing import List, Optional

import structlog
from fastapi import HTTPException, status
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from services.seller_service.access_control import USER_MANAGE, AccessControl
from shared.config.database import commit_or_conflict
from shared.errors import Conflict, NotFound, ValidationError
from shared.security.caller import ADMIN, ROLES, SELLER, Caller
from shared.security.jwt_handler import create_access_token

from .models import User
from .repository import UserRepository
from .schemas import TokenResponse, UserCreate, UserLogin

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

logger = structlog.get_logger(__name__)


class AuthService:

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate) -> User:
        email = data.email.strip().lower()
        if await UserRepository.find_by_email(db, email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

        business_name = (data.business_name or "").strip() or None
        is_seller = data.role == SELLER
        if is_seller and business_name is None:
            raise ValidationError("Sellers must provide a business name")

        user = await UserRepository.add(db, User(
            email=email,
            hashed_password=_pwd_context.hash(data.password),
            name=data.name.strip(),
            role=data.role,
            business_name=business_name if is_seller else None,
            approval_status="pending" if is_seller else "approved",
        ))
        logger.info("account_registered", user_id=user.id, role=user.role, approval_status=user.approval_status)
        return user

    @staticmethod
    async def login(db: AsyncSession, data: UserLogin) -> TokenResponse:
        user = await UserRepository.find_by_email(db, data.email)
        if user is None or not _pwd_context.verify(data.password, user.hashed_password):
            logger.info("login_failed", email=data.email)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

        # Approval is not a claim; gated calls resolve it from the database
        return TokenResponse(access_token=create_access_token(user.id, user.role))

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
        user = await UserRepository.get(db, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user


class UserAdministration:
    """Admin-side account management: listing, (de)activation and deletion."""

    @staticmethod
    async def list_users(
        db: AsyncSession,
        caller: Caller,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[User]:
        AccessControl.require(caller, USER_MANAGE)
        if role is not None and role not in ROLES:
            raise ValidationError(f"Unknown role '{role}'")
        return await UserRepository.list_users(db, role, search)

    @staticmethod
    async def _load_other(db: AsyncSession, caller: Caller, user_id: int, action: str) -> User:
        if user_id == caller.id:
            raise ValidationError(f"You cannot {action} your own account")
        user = await UserRepository.get_for_update(db, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    @staticmethod
    async def set_active(db: AsyncSession, caller: Caller, user_id: int, is_active: bool) -> User:
        AccessControl.require(caller, USER_MANAGE)
        user = await UserAdministration._load_other(db, caller, user_id, "change the status of")

        if user.is_active == is_active:
            return user
        if (
            not is_active
            and user.role == ADMIN
            and await UserRepository.count_admins(db, exclude_id=user.id, active_only=True) == 0
        ):
            raise ValidationError("Cannot deactivate the last active admin")

        user.is_active = is_active
        await commit_or_conflict(db, "account status update")

        logger.warning(
            "account_activated" if is_active else "account_deactivated",
            user_id=user_id,
            role=user.role,
            admin_id=caller.id,
        )
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, caller: Caller, user_id: int) -> None:
        """
        Remove an account and its unsold listings. Accounts that appear on any
        order, as buyer or as seller, are kept so order history stays intact;
        those can only be deactivated.
        """
        AccessControl.require(caller, USER_MANAGE)
        user = await UserAdministration._load_other(db, caller, user_id, "delete")

        if user.role == ADMIN and await UserRepository.count_admins(db, exclude_id=user.id) == 0:
            raise ValidationError("Cannot delete the last admin")
        if await UserRepository.has_order_history(db, user.id):
            raise Conflict(f"User {user_id} has order history; deactivate the account instead")

        role = user.role
        await UserRepository.delete_with_products(db, user)
        await commit_or_conflict(db, "account deletion")

        logger.warning("account_deleted", user_id=user_id, role=role, admin_id=caller.id)

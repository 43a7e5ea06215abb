from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.schemas import UserResponse, UserStatusUpdate
from services.auth_service.service import UserAdministration
from services.revenue_service.schemas import PlatformStats, SellerStats
from services.revenue_service.service import RevenueAggregator
from shared.config.database import get_db
from shared.security import Caller
from .access_control import SELLER_STATUS, AccessControl, current_caller
from .schemas import ApprovalStatusResponse, SellerAccountResponse, SellerDecision, SellerSuspension
from .service import SellerApproval

router = APIRouter(tags=["Seller"])
admin_router = APIRouter(tags=["Admin"])
public_router = APIRouter()

@public_router.get("/health")
async def health_check():
    return {"service": "seller", "status": "running"}


@router.get("/approval-status", response_model=ApprovalStatusResponse)
async def get_approval_status(
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    AccessControl.require(caller, SELLER_STATUS)
    return await SellerApproval.check_approval(db, caller.id)


@router.post("/resubmit", response_model=SellerAccountResponse)
async def resubmit_application(
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SellerApproval.resubmit(db, caller)


@router.get("/dashboard", response_model=SellerStats)
async def get_dashboard(
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await RevenueAggregator.seller_dashboard(db, caller)


@admin_router.get("/sellers", response_model=List[SellerAccountResponse])
async def list_sellers(
    status: Optional[str] = Query(default=None),
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SellerApproval.list_sellers(db, caller, status)


@admin_router.put("/sellers/{seller_id}/decision", response_model=SellerAccountResponse)
async def decide_seller(
    seller_id: int,
    payload: SellerDecision,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SellerApproval.decide(db, caller, seller_id, payload.decision, payload.reason)


@admin_router.put("/sellers/{seller_id}/suspend", response_model=SellerAccountResponse)
async def suspend_seller(
    seller_id: int,
    payload: SellerSuspension,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SellerApproval.suspend(db, caller, seller_id, payload.reason)


@admin_router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await UserAdministration.list_users(db, caller, role, search)


@admin_router.put("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await UserAdministration.set_active(db, caller, user_id, payload.is_active)


@admin_router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    await UserAdministration.delete_user(db, caller, user_id)


@admin_router.get("/dashboard/stats", response_model=PlatformStats)
async def get_platform_stats(
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await RevenueAggregator.platform_dashboard(db, caller)

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.seller_service.access_control import current_caller
from shared.config.database import get_db
from shared.config.settings import ORDER_RATE_LIMIT
from shared.security import Caller, limiter
from .schemas import CancelRequest, OrderCreate, OrderResponse, PaymentStatusUpdate, StatusUpdate
from .service import OrderStateMachine

router = APIRouter(tags=["Orders"])
public_router = APIRouter()

@public_router.get("/health")
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ORDER_RATE_LIMIT)
async def create_order(
    request: Request,  # Required by SlowAPI
    payload: OrderCreate,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await OrderStateMachine.create_order(db, caller, payload)


@router.get("/", response_model=List[OrderResponse])
async def list_orders(
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await OrderStateMachine.list_orders(db, caller)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await OrderStateMachine.get_order(db, order_id, caller)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: StatusUpdate,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await OrderStateMachine.transition_status(
        db,
        order_id,
        caller,
        payload.status,
        reason=payload.reason,
        expected_version=payload.expected_version,
    )


@router.put("/{order_id}/payment-status", response_model=OrderResponse)
async def update_payment_status(
    order_id: int,
    payload: PaymentStatusUpdate,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await OrderStateMachine.update_payment_status(db, order_id, caller, payload.payment_status)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    payload: CancelRequest,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await OrderStateMachine.cancel_by_buyer(db, order_id, caller, payload.reason)

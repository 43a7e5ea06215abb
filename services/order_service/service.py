"""
The order state machine.

Every mutation loads the order row FOR UPDATE and commits through the
version check, so of two racing requests (say "mark shipped" and "cancel")
exactly one wins and the other gets a Conflict. Stock effects run in the same
transaction as the status change: a rolled back transition never leaks a
reservation or a release.
"""
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.models import Product
from services.product_service.service import InventoryLedger, merge_quantities
from services.seller_service.access_control import (
    ORDER_CANCEL,
    ORDER_CREATE,
    ORDER_READ,
    ORDER_TRANSITION,
    PAYMENT_UPDATE,
    AccessControl,
)
from shared.config.database import commit_or_conflict
from shared.config.settings import (
    ESTIMATED_DELIVERY_DAYS,
    FREE_SHIPPING_THRESHOLD,
    SHIPPING_CHARGE,
    TAX_RATE,
)
from shared.errors import Conflict, DomainError, EmptyCart, InvalidTransition, NotFound, ValidationError
from shared.observability import (
    ecomm_order_create_duration_seconds,
    ecomm_order_transitions_total,
    ecomm_orders_created_total,
    ecomm_payment_status_total,
)
from shared.security.caller import ADMIN, SELLER, Caller

from .models import Order, OrderItem
from .repository import OrderRepository
from .schemas import OrderCreate
from .transitions import (
    BUYER_CANCELLABLE,
    CANCELLED,
    DELIVERED,
    ORDER_STATUSES,
    PAYMENT_PAID,
    PAYMENT_STATUSES,
    PROCESSING,
    SHIPPED,
    validate_payment_transition,
    validate_transition,
)

logger = structlog.get_logger(__name__)


def generate_order_number() -> str:
    return f"ORD{int(time.time() * 1000)}{secrets.randbelow(10000):04d}"


def _require_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Cancellation reason is required")
    return reason


def _build_order(buyer_id: int, data: OrderCreate, products: Dict[int, Product]) -> Order:
    items = []
    total = 0.0
    for line in data.items:
        product = products[line.product_id]
        item = OrderItem(
            product_id=product.id,
            seller_id=product.owner_id,
            product_name=product.name,
            quantity=line.quantity,
            unit_price=product.effective_price,
        )
        items.append(item)
        total += item.unit_price * item.quantity

    total = round(total, 2)
    shipping_charge = 0.0 if total >= FREE_SHIPPING_THRESHOLD else SHIPPING_CHARGE
    tax_amount = round(total * TAX_RATE, 2)
    discount_amount = 0.0
    now = datetime.now(timezone.utc)

    return Order(
        order_number=generate_order_number(),
        buyer_id=buyer_id,
        items=items,
        shipping_address=data.shipping_address.model_dump(),
        payment_method=data.payment_method,
        notes=data.notes,
        order_status="pending",
        payment_status="pending",
        total_amount=total,
        shipping_charge=shipping_charge,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        final_amount=round(total + shipping_charge + tax_amount - discount_amount, 2),
        estimated_delivery=now + timedelta(days=ESTIMATED_DELIVERY_DAYS),
        created_at=now,
    )


class OrderStateMachine:

    @staticmethod
    async def _load(db: AsyncSession, order_id: int, for_update: bool = False) -> Order:
        order = await OrderRepository.get_order(db, order_id, for_update=for_update)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    @staticmethod
    async def create_order(db: AsyncSession, caller: Caller, data: OrderCreate) -> Order:
        AccessControl.require(caller, ORDER_CREATE)
        if not data.items:
            ecomm_orders_created_total.labels(status="failed").inc()
            raise EmptyCart("No items in order")

        quantities = merge_quantities((line.product_id, line.quantity) for line in data.items)

        with ecomm_order_create_duration_seconds.time():
            try:
                products = await InventoryLedger.reserve_many(db, quantities)
                order = _build_order(caller.id, data, products)
                await OrderRepository.create_order(db, order)
                await db.commit()
            except DomainError:
                # Nothing from a failed checkout may stay visible, reserved stock included
                await db.rollback()
                ecomm_orders_created_total.labels(status="failed").inc()
                raise

        ecomm_orders_created_total.labels(status="success").inc()
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            buyer_id=caller.id,
            lines=len(order.items),
            final_amount=order.final_amount,
        )
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, caller: Caller) -> Order:
        AccessControl.require(caller, ORDER_READ)
        order = await OrderStateMachine._load(db, order_id)
        if caller.role == SELLER:
            owner_id = caller.id if caller.id in order.seller_ids else None
            await AccessControl.authorize(db, caller, owner_id, require_approval=True)
        else:
            await AccessControl.authorize(db, caller, order.buyer_id)
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, caller: Caller) -> List[Order]:
        AccessControl.require(caller, ORDER_READ)
        if caller.role == ADMIN:
            return await OrderRepository.list_all(db)
        if caller.role == SELLER:
            await AccessControl.require_approved_seller(db, caller)
            return await OrderRepository.list_for_seller(db, caller.id)
        return await OrderRepository.list_for_buyer(db, caller.id)

    @staticmethod
    async def transition_status(
        db: AsyncSession,
        order_id: int,
        caller: Caller,
        new_status: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        AccessControl.require(caller, ORDER_TRANSITION)
        if new_status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status '{new_status}'")

        order = await OrderStateMachine._load(db, order_id, for_update=True)
        await AccessControl.authorize_many(db, caller, order.seller_ids, require_approval=True)

        if expected_version is not None and expected_version != order.version:
            raise Conflict(
                f"Order {order.order_number} changed since it was read",
                current_status=order.order_status,
                current_version=order.version,
            )
        validate_transition(order.order_number, order.order_status, new_status)
        if new_status == CANCELLED:
            reason = _require_reason(reason)

        return await OrderStateMachine._apply_status(db, order, new_status, reason, caller)

    @staticmethod
    async def cancel_by_buyer(
        db: AsyncSession,
        order_id: int,
        caller: Caller,
        reason: Optional[str],
    ) -> Order:
        AccessControl.require(caller, ORDER_CANCEL)
        order = await OrderStateMachine._load(db, order_id, for_update=True)
        await AccessControl.authorize(db, caller, order.buyer_id)

        if order.order_status == CANCELLED:
            raise Conflict(f"Order {order.order_number} is already cancelled", current_status=CANCELLED)
        if order.order_status not in BUYER_CANCELLABLE:
            raise InvalidTransition(
                f"Order cannot be cancelled in {order.order_status} status",
                current_status=order.order_status,
            )
        reason = _require_reason(reason)

        return await OrderStateMachine._apply_status(db, order, CANCELLED, reason, caller)

    @staticmethod
    async def _apply_status(
        db: AsyncSession,
        order: Order,
        new_status: str,
        reason: Optional[str],
        caller: Caller,
    ) -> Order:
        from_status = order.order_status
        order_id, order_number = order.id, order.order_number
        now = datetime.now(timezone.utc)

        if new_status == CANCELLED:
            # The only place stock comes back; the version check makes it once per order
            await InventoryLedger.release_many(db, order.quantities_by_product())
            order.cancelled_at = now
            order.cancelled_reason = reason
        elif new_status == PROCESSING:
            order.processed_at = now
        elif new_status == SHIPPED:
            order.shipped_at = now
        elif new_status == DELIVERED:
            order.delivered_at = now
        order.order_status = new_status

        await commit_or_conflict(db, "order status update")

        ecomm_order_transitions_total.labels(from_status=from_status, to_status=new_status).inc()
        logger.info(
            "order_status_changed",
            order_id=order_id,
            order_number=order_number,
            from_status=from_status,
            to_status=new_status,
            actor_id=caller.id,
            actor_role=caller.role,
            reason=reason,
        )
        return order

    @staticmethod
    async def update_payment_status(
        db: AsyncSession,
        order_id: int,
        caller: Caller,
        new_payment_status: str,
    ) -> Order:
        AccessControl.require(caller, PAYMENT_UPDATE)
        if new_payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status '{new_payment_status}'")

        order = await OrderStateMachine._load(db, order_id, for_update=True)
        await AccessControl.authorize_many(db, caller, order.seller_ids, require_approval=True)

        from_status = order.payment_status
        validate_payment_transition(order.order_status, from_status, new_payment_status)

        order_id, order_number = order.id, order.order_number
        order.payment_status = new_payment_status
        if new_payment_status == PAYMENT_PAID:
            order.paid_at = datetime.now(timezone.utc)

        await commit_or_conflict(db, "payment status update")

        ecomm_payment_status_total.labels(payment_status=new_payment_status).inc()
        logger.info(
            "order_payment_status_changed",
            order_id=order_id,
            order_number=order_number,
            from_status=from_status,
            to_status=new_payment_status,
            actor_id=caller.id,
            actor_role=caller.role,
        )
        return order

"""
Dashboard figures, derived on demand and never stored.

Seller revenue is the sum of that seller's own order lines on orders that are
both delivered and paid; other sellers' lines on a shared order do not count.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import and_, case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from services.order_service.models import Order, OrderItem
from services.order_service.transitions import (
    CANCELLED,
    DELIVERED,
    PAYMENT_PAID,
    PENDING,
    PROCESSING,
    SHIPPED,
)
from services.product_service.models import Product
from services.seller_service.access_control import PLATFORM_STATS, SELLER_DASHBOARD, AccessControl
from shared.config.settings import DASHBOARD_LIST_SIZE, LOW_STOCK_THRESHOLD, RECENT_REVENUE_DAYS
from shared.security.caller import ADMIN, CUSTOMER, SELLER, Caller

from .schemas import LowStockProduct, PlatformStats, SellerOrderSummary, SellerStats

logger = structlog.get_logger(__name__)


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up, 0 for an empty whole."""
    if not whole:
        return 0
    return int(part * 100 / whole + 0.5)


def _count_where(condition, column):
    return func.count(distinct(case((condition, column))))


class RevenueAggregator:

    @staticmethod
    async def seller_stats(
        db: AsyncSession,
        seller_id: int,
        now: Optional[datetime] = None,
    ) -> SellerStats:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=RECENT_REVENUE_DAYS)

        line_total = OrderItem.unit_price * OrderItem.quantity
        earned = and_(Order.payment_status == PAYMENT_PAID, Order.order_status == DELIVERED)

        # One statement so every order figure comes from the same snapshot
        order_stmt = (
            select(
                func.count(distinct(Order.id)).label("total_orders"),
                _count_where(Order.order_status == PENDING, Order.id).label("pending_orders"),
                _count_where(Order.order_status == PROCESSING, Order.id).label("processing_orders"),
                _count_where(Order.order_status == SHIPPED, Order.id).label("shipped_orders"),
                _count_where(Order.order_status == DELIVERED, Order.id).label("completed_orders"),
                _count_where(Order.order_status == CANCELLED, Order.id).label("cancelled_orders"),
                func.coalesce(func.sum(case((earned, line_total), else_=0)), 0).label("total_revenue"),
                func.coalesce(
                    func.sum(case((and_(earned, Order.paid_at >= cutoff), line_total), else_=0)),
                    0,
                ).label("recent_revenue"),
            )
            .select_from(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .where(OrderItem.seller_id == seller_id)
        )
        orders = (await db.execute(order_stmt)).one()

        product_stmt = (
            select(
                func.count(Product.id).label("total_products"),
                func.count(case((Product.is_active.is_(True), Product.id))).label("active_products"),
                func.count(
                    case((and_(Product.is_active.is_(True), Product.stock < LOW_STOCK_THRESHOLD), Product.id))
                ).label("low_stock_count"),
            )
            .where(Product.owner_id == seller_id)
        )
        products = (await db.execute(product_stmt)).one()

        low_stock_stmt = (
            select(Product.id, Product.name, Product.stock, Product.price)
            .where(
                Product.owner_id == seller_id,
                Product.is_active.is_(True),
                Product.stock < LOW_STOCK_THRESHOLD,
            )
            .order_by(Product.stock, Product.id)
            .limit(DASHBOARD_LIST_SIZE)
        )
        low_stock = (await db.execute(low_stock_stmt)).all()

        recent_stmt = (
            select(
                Order.id,
                Order.order_number,
                Order.order_status,
                Order.payment_status,
                Order.created_at,
                func.sum(line_total).label("seller_total"),
            )
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(OrderItem.seller_id == seller_id)
            .group_by(Order.id, Order.order_number, Order.order_status, Order.payment_status, Order.created_at)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(DASHBOARD_LIST_SIZE)
        )
        recent = (await db.execute(recent_stmt)).all()

        return SellerStats(
            total_revenue=round(float(orders.total_revenue), 2),
            recent_revenue=round(float(orders.recent_revenue), 2),
            total_orders=orders.total_orders,
            pending_orders=orders.pending_orders,
            processing_orders=orders.processing_orders,
            shipped_orders=orders.shipped_orders,
            completed_orders=orders.completed_orders,
            cancelled_orders=orders.cancelled_orders,
            completion_rate=percentage(orders.completed_orders, orders.total_orders),
            total_products=products.total_products,
            active_products=products.active_products,
            low_stock_count=products.low_stock_count,
            low_stock_products=[LowStockProduct(**row._mapping) for row in low_stock],
            recent_orders=[
                SellerOrderSummary(
                    id=row.id,
                    order_number=row.order_number,
                    order_status=row.order_status,
                    payment_status=row.payment_status,
                    seller_total=round(float(row.seller_total), 2),
                    created_at=row.created_at,
                )
                for row in recent
            ],
        )

    @staticmethod
    async def platform_stats(db: AsyncSession) -> PlatformStats:
        is_seller = User.role == SELLER
        stmt = select(
            func.count(User.id).label("total_users"),
            func.count(case((User.role == CUSTOMER, User.id))).label("total_customers"),
            func.count(case((is_seller, User.id))).label("total_sellers"),
            func.count(case((User.role == ADMIN, User.id))).label("total_admins"),
            func.count(case((and_(is_seller, User.approval_status == "pending"), User.id))).label("pending_sellers"),
            func.count(case((and_(is_seller, User.approval_status == "approved"), User.id))).label("approved_sellers"),
            func.count(case((and_(is_seller, User.approval_status == "rejected"), User.id))).label("rejected_sellers"),
        )
        row = (await db.execute(stmt)).one()

        return PlatformStats(
            total_users=row.total_users,
            total_customers=row.total_customers,
            total_sellers=row.total_sellers,
            total_admins=row.total_admins,
            pending_sellers=row.pending_sellers,
            approved_sellers=row.approved_sellers,
            rejected_sellers=row.rejected_sellers,
            approval_rate=percentage(row.approved_sellers, row.total_sellers),
        )

    @staticmethod
    async def seller_dashboard(db: AsyncSession, caller: Caller) -> SellerStats:
        AccessControl.require(caller, SELLER_DASHBOARD)
        await AccessControl.require_approved_seller(db, caller)
        stats = await RevenueAggregator.seller_stats(db, caller.id)
        logger.debug("seller_dashboard_computed", seller_id=caller.id, total_orders=stats.total_orders)
        return stats

    @staticmethod
    async def platform_dashboard(db: AsyncSession, caller: Caller) -> PlatformStats:
        AccessControl.require(caller, PLATFORM_STATS)
        return await RevenueAggregator.platform_stats(db)

from datetime import datetime
from typing import List

from pydantic import BaseModel


class LowStockProduct(BaseModel):
    id: int
    name: str
    stock: int
    price: float


class SellerOrderSummary(BaseModel):
    """An order as one seller sees it: seller_total covers only that seller's lines."""
    id: int
    order_number: str
    order_status: str
    payment_status: str
    seller_total: float
    created_at: datetime


class SellerStats(BaseModel):
    total_revenue: float
    recent_revenue: float
    total_orders: int
    pending_orders: int
    processing_orders: int
    shipped_orders: int
    completed_orders: int
    cancelled_orders: int
    completion_rate: int
    total_products: int
    active_products: int
    low_stock_count: int
    low_stock_products: List[LowStockProduct] = []
    recent_orders: List[SellerOrderSummary] = []


class PlatformStats(BaseModel):
    total_users: int
    total_customers: int
    total_sellers: int
    total_admins: int
    pending_sellers: int
    approved_sellers: int
    rejected_sellers: int
    approval_rate: int

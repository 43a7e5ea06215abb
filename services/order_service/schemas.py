from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field, StringConstraints

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ShippingAddress(BaseModel):
    street: NonBlank
    city: NonBlank
    state: Optional[str] = None
    country: NonBlank
    zip_code: NonBlank
    phone: NonBlank


class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    # An empty list is a valid body; the service rejects it as an empty cart
    items: List[OrderItemCreate]
    shipping_address: ShippingAddress
    payment_method: Literal["cod"] = "cod"
    notes: str = ""


class StatusUpdate(BaseModel):
    status: Literal["pending", "processing", "shipped", "delivered", "cancelled"]
    reason: Optional[str] = None
    expected_version: Optional[int] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: Literal["pending", "paid", "failed"]


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class OrderItemResponse(BaseModel):
    product_id: int
    seller_id: int
    product_name: str
    quantity: int
    unit_price: float
    line_total: float

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    buyer_id: int
    items: List[OrderItemResponse]
    shipping_address: ShippingAddress
    payment_method: str
    notes: str
    order_status: str
    payment_status: str
    total_amount: float
    shipping_charge: float
    tax_amount: float
    discount_amount: float
    final_amount: float
    estimated_delivery: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    version: int

    class Config:
        from_attributes = True

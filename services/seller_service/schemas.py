from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class ApprovalStatusResponse(BaseModel):
    is_approved: bool
    status: str
    reason: Optional[str] = None

    @classmethod
    def of(cls, seller) -> "ApprovalStatusResponse":
        # A rejection reason is only meaningful while the seller is rejected
        return cls(
            is_approved=seller.approval_status == "approved",
            status=seller.approval_status,
            reason=seller.rejection_reason if seller.approval_status == "rejected" else None,
        )


class SellerAccountResponse(BaseModel):
    id: int
    email: str
    name: str
    business_name: Optional[str] = None
    approval_status: str
    is_approved: bool
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SellerDecision(BaseModel):
    decision: Literal["approve", "reject"]
    reason: Optional[str] = None


class SellerSuspension(BaseModel):
    reason: str

"""
Seller onboarding state machine.

    pending  --approve-->  approved
    pending  --reject--->  rejected   (reason required)
    rejected --resubmit->  pending    (seller-initiated, never automatic)
    approved --suspend-->  rejected   (admin demotion, reason required)

Decisions never touch existing orders; they only change what the seller may
do from now on.
"""
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from shared.config.database import commit_or_conflict
from shared.errors import InvalidTransition, NotFound, ValidationError
from shared.observability import ecomm_seller_decisions_total
from shared.security.caller import Caller

from .access_control import SELLER_RESUBMIT, SELLER_REVIEW, AccessControl
from .repository import SellerRepository
from .schemas import ApprovalStatusResponse

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
APPROVAL_STATUSES = (PENDING, APPROVED, REJECTED)

APPROVE = "approve"
REJECT = "reject"

logger = structlog.get_logger(__name__)


def _require_reason(reason: Optional[str], message: str) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError(message)
    return reason


class SellerApproval:

    @staticmethod
    async def _load(db: AsyncSession, seller_id: int, for_update: bool = False) -> User:
        seller = await SellerRepository.get_seller(db, seller_id, for_update=for_update)
        if seller is None:
            raise NotFound(f"Seller {seller_id} not found")
        return seller

    @staticmethod
    async def check_approval(db: AsyncSession, seller_id: int) -> ApprovalStatusResponse:
        return ApprovalStatusResponse.of(await SellerApproval._load(db, seller_id))

    @staticmethod
    async def decide(
        db: AsyncSession,
        caller: Caller,
        seller_id: int,
        decision: str,
        reason: Optional[str] = None,
    ) -> User:
        """First-time review of a pending application."""
        AccessControl.require(caller, SELLER_REVIEW)
        if decision not in (APPROVE, REJECT):
            raise ValidationError(f"Unknown decision '{decision}'")
        if decision == REJECT:
            reason = _require_reason(reason, "Rejection reason is required")

        seller = await SellerApproval._load(db, seller_id, for_update=True)
        if seller.approval_status != PENDING:
            raise InvalidTransition(
                f"Seller {seller_id} is {seller.approval_status}; only pending applications can be reviewed",
                current_status=seller.approval_status,
            )

        if decision == APPROVE:
            seller.approval_status = APPROVED
            seller.rejection_reason = None
        else:
            seller.approval_status = REJECTED
            seller.rejection_reason = reason
        seller.reviewed_by = caller.id
        seller.reviewed_at = datetime.now(timezone.utc)

        await commit_or_conflict(db, "seller review")

        ecomm_seller_decisions_total.labels(decision=decision).inc()
        logger.info(
            "seller_approved" if decision == APPROVE else "seller_rejected",
            seller_id=seller_id,
            reviewer_id=caller.id,
            reason=reason,
        )
        return seller

    @staticmethod
    async def suspend(db: AsyncSession, caller: Caller, seller_id: int, reason: Optional[str]) -> User:
        """Demote an approved seller (approved -> rejected), outside the applicant review flow."""
        AccessControl.require(caller, SELLER_REVIEW)
        reason = _require_reason(reason, "Suspension reason is required")

        seller = await SellerApproval._load(db, seller_id, for_update=True)
        if seller.approval_status != APPROVED:
            raise InvalidTransition(
                f"Seller {seller_id} is {seller.approval_status}; only approved sellers can be suspended",
                current_status=seller.approval_status,
            )

        seller.approval_status = REJECTED
        seller.rejection_reason = reason
        seller.reviewed_by = caller.id
        seller.reviewed_at = datetime.now(timezone.utc)

        await commit_or_conflict(db, "seller suspension")

        ecomm_seller_decisions_total.labels(decision="suspend").inc()
        logger.warning("seller_suspended", seller_id=seller_id, reviewer_id=caller.id, reason=reason)
        return seller

    @staticmethod
    async def resubmit(db: AsyncSession, caller: Caller) -> User:
        """The seller puts their own rejected application back in the queue."""
        AccessControl.require(caller, SELLER_RESUBMIT)
        seller = await SellerApproval._load(db, caller.id, for_update=True)
        if seller.approval_status != REJECTED:
            raise InvalidTransition(
                f"Seller {caller.id} is {seller.approval_status}; only rejected applications can be resubmitted",
                current_status=seller.approval_status,
            )

        seller.approval_status = PENDING
        seller.rejection_reason = None

        await commit_or_conflict(db, "seller resubmission")

        logger.info("seller_resubmitted", seller_id=caller.id)
        return seller

    @staticmethod
    async def list_sellers(db: AsyncSession, caller: Caller, approval_status: Optional[str] = None) -> List[User]:
        AccessControl.require(caller, SELLER_REVIEW)
        if approval_status is not None and approval_status not in APPROVAL_STATUSES:
            raise ValidationError(f"Unknown approval status '{approval_status}'")
        return await SellerRepository.list_sellers(db, approval_status)

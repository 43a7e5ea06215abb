from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from shared.config.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    """
    One row per account. Sellers carry their onboarding state here:
    approval_status is 'pending' until an admin reviews them, while customers
    and admins are created already approved.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(120), nullable=False, default="")
    role = Column(String(20), nullable=False, default="customer", index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Seller profile
    business_name = Column(String(255), nullable=True)
    approval_status = Column(String(20), nullable=False, default="approved", index=True)
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_approved(self) -> bool:
        return self.approval_status == "approved"

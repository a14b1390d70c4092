"""
Vendor profile, payouts and payout holds
"""

from sqlalchemy import Column, String, Boolean, Numeric, ForeignKey, Index, Enum, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class PayoutStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REJECTED = "REJECTED"

class Vendor(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Vendor (store) information"""

    __tablename__ = "vendors"

    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=True)
    store_name = Column(String(255), nullable=False)

    # Commission stored as a fraction (0.05 == 5%)
    commission_rate = Column(Numeric(5, 4), default=0.05)
    minimum_payout = Column(Numeric(12, 2), default=5000)
    is_approved = Column(Boolean, default=False, nullable=False)

    user = relationship("User")
    products = relationship("Product", back_populates="vendor")
    payouts = relationship("VendorPayout", back_populates="vendor")

    @property
    def display_name(self) -> str:
        if self.user is not None and self.user.name:
            return self.user.name
        return self.store_name

class VendorPayout(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Vendor payout records"""

    __tablename__ = "vendor_payouts"

    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(PayoutStatus), default=PayoutStatus.PENDING, nullable=False, index=True)
    reference_id = Column(String(100), nullable=True)
    failure_reason = Column(String(500), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    vendor = relationship("Vendor", back_populates="payouts")

    __table_args__ = (
        Index("idx_payouts_vendor_status", "vendor_id", "status"),
    )

class PayoutHold(Base, TimestampedModel, UUIDModel):
    """Funds held back from a vendor payout"""

    __tablename__ = "payout_holds"

    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=False)
    hold_amount = Column(Numeric(12, 2), nullable=False)
    reason = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    vendor = relationship("Vendor")

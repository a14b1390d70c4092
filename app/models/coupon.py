"""
Coupon and discount models
"""

from sqlalchemy import Column, String, Integer, Numeric, Boolean, ForeignKey, Index, DateTime, Enum, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"

class Coupon(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Vendor discount coupons"""

    __tablename__ = "coupons"

    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=True)
    code = Column(String(50), unique=True, nullable=False, index=True)

    # Discount details
    discount_type = Column(Enum(DiscountType), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)

    # Usage
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)

    # Validity
    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    vendor = relationship("Vendor")

    __table_args__ = (
        Index("idx_coupons_active_expiry", "is_active", "expires_at"),
    )

    @property
    def usage_percentage(self) -> float:
        if not self.usage_limit:
            return 0.0
        return (self.usage_count or 0) / self.usage_limit * 100

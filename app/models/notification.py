"""
Notification and notification preference models
"""

from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Index, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class NotificationType(str, enum.Enum):
    """Business event a notification represents"""

    # Orders and pickups
    ORDER_STATUS_CHANGE = "ORDER_STATUS_CHANGE"
    PICKUP_READY = "PICKUP_READY"
    ORDER_PICKED_UP = "ORDER_PICKED_UP"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    NEW_ORDER_VENDOR = "NEW_ORDER_VENDOR"
    NEW_PICKUP_ASSIGNMENT = "NEW_PICKUP_ASSIGNMENT"
    RETURN_PICKUP_ASSIGNMENT = "RETURN_PICKUP_ASSIGNMENT"

    # Returns and refunds
    RETURN_REQUESTED = "RETURN_REQUESTED"
    RETURN_APPROVED = "RETURN_APPROVED"
    RETURN_REJECTED = "RETURN_REJECTED"
    RETURN_VENDOR_ACTION_REQUIRED = "RETURN_VENDOR_ACTION_REQUIRED"
    REFUND_PROCESSED = "REFUND_PROCESSED"

    # Payments and payouts
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYOUT_PROCESSED = "PAYOUT_PROCESSED"
    PAYOUT_ON_HOLD = "PAYOUT_ON_HOLD"
    PAYOUT_HOLD_RELEASED = "PAYOUT_HOLD_RELEASED"
    MINIMUM_PAYOUT_REACHED = "MINIMUM_PAYOUT_REACHED"
    COMMISSION_RATE_CHANGED = "COMMISSION_RATE_CHANGED"

    # Inventory and products
    LOW_STOCK_ALERT = "LOW_STOCK_ALERT"
    POPULAR_PRODUCT_ALERT = "POPULAR_PRODUCT_ALERT"
    PRODUCT_BACK_IN_STOCK = "PRODUCT_BACK_IN_STOCK"
    PRODUCT_PRICE_DROP = "PRODUCT_PRICE_DROP"
    WISHLIST_REMINDER = "WISHLIST_REMINDER"

    # Reviews
    NEW_PRODUCT_REVIEW = "NEW_PRODUCT_REVIEW"
    REVIEW_RESPONSE = "REVIEW_RESPONSE"
    REVIEW_MILESTONE = "REVIEW_MILESTONE"

    # Coupons
    COUPON_CREATED = "COUPON_CREATED"
    COUPON_EXPIRED = "COUPON_EXPIRED"
    COUPON_USAGE_THRESHOLD = "COUPON_USAGE_THRESHOLD"
    COUPON_APPLIED = "COUPON_APPLIED"
    COUPON_FAILED = "COUPON_FAILED"

    # Admin and agents
    HIGH_VALUE_ORDER_ALERT = "HIGH_VALUE_ORDER_ALERT"
    NEW_VENDOR_APPLICATION = "NEW_VENDOR_APPLICATION"
    AGENT_LOCATION_NAME_UPDATE = "AGENT_LOCATION_NAME_UPDATE"

class NotificationChannel(str, enum.Enum):
    """Delivery medium; only IN_APP and PUSH are wired to a transport"""

    IN_APP = "IN_APP"
    PUSH = "PUSH"
    EMAIL = "EMAIL"
    SMS = "SMS"

class Notification(Base, TimestampedModel, UUIDModel, SerializableModel):
    """One message delivered to one user"""

    __tablename__ = "notifications"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Notification content
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)

    # References
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    return_id = Column(Uuid, ForeignKey("refund_requests.id", ondelete="SET NULL"), nullable=True)
    reference_url = Column(String(500), nullable=True)

    # Status
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="notifications")

    # Indexes
    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read"),
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_type", "type"),
    )

class NotificationPreference(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Per (user, type, channel) opt-in flag; a missing row means enabled"""

    __tablename__ = "notification_preferences"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    channel = Column(String(20), nullable=False, default=NotificationChannel.IN_APP.value)
    enabled = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "channel", name="uq_notification_preference"),
    )

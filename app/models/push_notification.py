"""Push notification models"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Text, DateTime, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampedModel, UUIDModel, SerializableModel

class PushSubscription(Base, TimestampedModel, UUIDModel, SerializableModel):
    """A browser's Web Push endpoint registration"""

    __tablename__ = "push_subscriptions"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    endpoint = Column(Text, nullable=False)
    p256dh_key = Column(String(255), nullable=False)
    auth_key = Column(String(255), nullable=False)
    user_agent = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="push_subscriptions")

    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="uq_push_subscription_user_endpoint"),
        Index("idx_push_subscriptions_user_active", "user_id", "is_active"),
    )

    def subscription_info(self) -> dict:
        """Shape expected by the Web Push client"""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }

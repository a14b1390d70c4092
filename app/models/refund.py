"""Refund / return request model"""

from sqlalchemy import Column, String, Numeric, ForeignKey, DateTime, Enum, Text, Index, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class RefundStatus(str, enum.Enum):
    REQUESTED = "REQUESTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"

class RefundRequest(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Customer request to return an order item"""

    __tablename__ = "refund_requests"

    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False)
    order_item_id = Column(Uuid, ForeignKey("order_items.id"), nullable=True)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False)
    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=True)
    agent_id = Column(Uuid, ForeignKey("agents.id"), nullable=True)

    status = Column(Enum(RefundStatus), default=RefundStatus.REQUESTED, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    vendor_response = Column(Text, nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)
    pickup_date = Column(DateTime(timezone=True), nullable=True)

    order = relationship("Order")
    order_item = relationship("OrderItem")
    customer = relationship("Customer")
    vendor = relationship("Vendor")
    agent = relationship("Agent")

    __table_args__ = (
        Index("idx_refunds_customer", "customer_id"),
    )

    @property
    def product_name(self) -> str:
        item = self.order_item
        if item is not None and item.product is not None:
            return item.product.name
        return "Unknown Product"

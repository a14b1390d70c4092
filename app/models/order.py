"""Order and order item models"""

from sqlalchemy import Column, String, Numeric, Integer, Enum, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    PICKED_UP = "PICKED_UP"
    CANCELLED = "CANCELLED"

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

class OrderItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    READY = "READY"
    CANCELLED = "CANCELLED"

class Order(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Customer order"""

    __tablename__ = "orders"

    short_id = Column(String(20), nullable=True, index=True)

    # Parties
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False)
    agent_id = Column(Uuid, ForeignKey("agents.id"), nullable=True)

    # Status
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    # Amounts and payment
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(200), nullable=True)

    pickup_code = Column(String(20), nullable=True)

    # Relationships
    customer = relationship("Customer")
    agent = relationship("Agent")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_orders_customer_status", "customer_id", "status"),
    )

    @property
    def display_id(self) -> str:
        return self.short_id or str(self.id)[:8]

class OrderItem(Base, TimestampedModel, UUIDModel):
    """Individual items within an order"""

    __tablename__ = "order_items"

    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    commission_amount = Column(Numeric(12, 2), default=0)
    status = Column(Enum(OrderItemStatus), default=OrderItemStatus.PENDING, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product")
    vendor = relationship("Vendor")

    __table_args__ = (
        Index("idx_order_items_vendor", "vendor_id"),
        Index("idx_order_items_product_created", "product_id", "created_at"),
    )

    @property
    def line_total(self):
        return (self.price or 0) * (self.quantity or 0)

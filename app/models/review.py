"""
Product review and rating model
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, CheckConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class Review(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Product reviews and ratings"""

    __tablename__ = "reviews"

    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=True)

    # Review content
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    # Vendor reply
    response_text = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    product = relationship("Product")
    customer = relationship("Customer")

    # Constraints
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_rating_range"),
        Index("idx_reviews_product", "product_id"),
        Index("idx_reviews_customer_product", "customer_id", "product_id"),
    )

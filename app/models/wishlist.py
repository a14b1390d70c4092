"""
Wishlist model for saved products
"""

from sqlalchemy import Column, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, TimestampedModel, UUIDModel

class WishlistItem(Base, TimestampedModel, UUIDModel):
    """Customer wishlist items"""

    __tablename__ = "wishlist_items"

    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)

    # Relationships
    customer = relationship("Customer", back_populates="wishlist_items")
    product = relationship("Product", back_populates="wishlist_items")

    # Constraints
    __table_args__ = (
        UniqueConstraint("customer_id", "product_id", name="uq_customer_product_wishlist"),
        Index("idx_wishlist_customer", "customer_id"),
    )

"""Product model"""

from sqlalchemy import Column, String, Numeric, Integer, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class Product(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Vendor product with inventory"""

    __tablename__ = "products"

    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=False)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False)
    inventory = Column(Integer, default=0, nullable=False)
    is_published = Column(Boolean, default=True, nullable=False)

    vendor = relationship("Vendor", back_populates="products")
    wishlist_items = relationship("WishlistItem", back_populates="product")

    __table_args__ = (
        Index("idx_products_published_inventory", "is_published", "inventory"),
    )

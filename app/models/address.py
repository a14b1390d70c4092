"""
Address model for pickup locations
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, TimestampedModel, UUIDModel

class Address(Base, TimestampedModel, UUIDModel):
    """Customer addresses"""

    __tablename__ = "addresses"

    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False)

    line1 = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    customer = relationship("Customer", back_populates="addresses")

    __table_args__ = (
        Index("idx_addresses_customer_default", "customer_id", "is_default"),
    )

    @property
    def display(self) -> str:
        return f"{self.line1}, {self.city}"

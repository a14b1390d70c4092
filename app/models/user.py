"""
User model and marketplace actor profiles
Customers, vendors and agents each link back to one user row
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    AGENT = "AGENT"
    ADMIN = "ADMIN"

class User(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Authenticated account; owner of notifications"""

    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True)
    name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    push_subscriptions = relationship("PushSubscription", back_populates="user", cascade="all, delete-orphan")

class Customer(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Buyer profile"""

    __tablename__ = "customers"

    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=True)

    user = relationship("User")
    addresses = relationship("Address", back_populates="customer")
    wishlist_items = relationship("WishlistItem", back_populates="customer")

class Agent(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Pickup agent profile"""

    __tablename__ = "agents"

    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=True)
    name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=True, index=True)
    location_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    user = relationship("User")

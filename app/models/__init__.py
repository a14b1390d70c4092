"""Models package initialization"""

from .base import Base
from .user import User, UserRole, Customer, Agent
from .address import Address
from .seller import Vendor, VendorPayout, PayoutHold, PayoutStatus
from .product import Product
from .order import Order, OrderItem, OrderStatus, PaymentStatus, OrderItemStatus
from .coupon import Coupon, DiscountType
from .refund import RefundRequest, RefundStatus
from .wishlist import WishlistItem
from .review import Review
from .notification import Notification, NotificationPreference, NotificationType, NotificationChannel
from .push_notification import PushSubscription

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Customer",
    "Agent",
    "Address",
    "Vendor",
    "VendorPayout",
    "PayoutHold",
    "PayoutStatus",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "OrderItemStatus",
    "Coupon",
    "DiscountType",
    "RefundRequest",
    "RefundStatus",
    "WishlistItem",
    "Review",
    "Notification",
    "NotificationPreference",
    "NotificationType",
    "NotificationChannel",
    "PushSubscription",
]

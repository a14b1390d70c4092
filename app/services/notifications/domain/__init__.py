"""Domain notifiers: one per business area"""

from .base import BaseNotifier
from .orders import OrderNotifier
from .payments import PaymentNotifier
from .vendor_orders import VendorOrderNotifier
from .payouts import PayoutNotifier
from .refunds import RefundNotifier
from .agents import AgentNotifier
from .inventory import InventoryNotifier
from .coupons import CouponNotifier, CouponApplication
from .products import ProductNotifier
from .reviews import ReviewNotifier
from .admin import AdminNotifier

__all__ = [
    "BaseNotifier",
    "OrderNotifier",
    "PaymentNotifier",
    "VendorOrderNotifier",
    "PayoutNotifier",
    "RefundNotifier",
    "AgentNotifier",
    "InventoryNotifier",
    "CouponNotifier",
    "CouponApplication",
    "ProductNotifier",
    "ReviewNotifier",
    "AdminNotifier",
]

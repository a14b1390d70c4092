"""
Notification dispatch engine

Templates render typed event data into in-app notifications; the store
persists them behind per-user preferences, push delivers them to
subscribed browsers and realtime relays every change to open sockets.
"""

from .errors import (
    NotificationError,
    TemplateNotFoundError,
    RecipientUnresolvedError,
    PreferenceCheckFailure,
    StoreError,
    NotFoundError,
    UnsupportedChannelError,
    PushConfigurationError,
    DeliveryError,
)
from .results import NotificationResult, safe_notify, dispatch_detached
from .templates import TEMPLATES, render, get_template, notification_categories
from .preferences import NotificationPreferenceService
from .store import NotificationStore, NewNotification, BatchResult
from .push import WebPushService, PyWebPushSender, build_payload
from .dispatcher import NotificationDispatcher
from .realtime import notification_publisher
from .domain import (
    OrderNotifier,
    PaymentNotifier,
    VendorOrderNotifier,
    PayoutNotifier,
    RefundNotifier,
    AgentNotifier,
    InventoryNotifier,
    CouponNotifier,
    CouponApplication,
    ProductNotifier,
    ReviewNotifier,
    AdminNotifier,
)

__all__ = [
    "NotificationError",
    "TemplateNotFoundError",
    "RecipientUnresolvedError",
    "PreferenceCheckFailure",
    "StoreError",
    "NotFoundError",
    "UnsupportedChannelError",
    "PushConfigurationError",
    "DeliveryError",
    "NotificationResult",
    "safe_notify",
    "dispatch_detached",
    "TEMPLATES",
    "render",
    "get_template",
    "notification_categories",
    "NotificationPreferenceService",
    "NotificationStore",
    "NewNotification",
    "BatchResult",
    "WebPushService",
    "PyWebPushSender",
    "build_payload",
    "NotificationDispatcher",
    "notification_publisher",
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

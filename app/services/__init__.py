"""Services package"""

from .notifications import NotificationDispatcher, NotificationStore, WebPushService

__all__ = [
    "NotificationDispatcher",
    "NotificationStore",
    "WebPushService",
]

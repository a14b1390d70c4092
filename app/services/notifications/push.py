"""
Web Push delivery

Fans a payload out to every active subscription of a user. Endpoints
the push service reports as gone (404/410) are soft-invalidated;
transient failures leave the subscription untouched for a later send.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_
from pywebpush import webpush, WebPushException
import asyncio
import json
import uuid
import logging

from app.core.config import settings
from app.models.notification import Notification, NotificationChannel, NotificationType
from app.models.push_notification import PushSubscription
from app.utils.helpers import coerce_uuid, utcnow
from .errors import DeliveryError, PushConfigurationError
from .preferences import NotificationPreferenceService
from .results import NotificationResult

logger = logging.getLogger(__name__)

LEGACY_FCM_PREFIX = "https://fcm.googleapis.com/fcm/send/"
FCM_PREFIX = "https://fcm.googleapis.com/wp/"

VIEW_ICON = "/icons/view-icon.png"
DEFAULT_TAG = "marketplace-notification"
DEFAULT_URL = "/notifications"

def normalize_endpoint(endpoint: str) -> str:
    """Rewrite legacy FCM endpoints to the Web Push form"""
    if endpoint.startswith(LEGACY_FCM_PREFIX):
        return FCM_PREFIX + endpoint[len(LEGACY_FCM_PREFIX):]
    return endpoint

class WebPushSender(Protocol):
    """Web Push protocol provider"""

    async def send(self, subscription_info: Dict[str, Any], data: str) -> None:
        """Deliver one payload; raises DeliveryError on failure"""
        ...

class PyWebPushSender:
    """pywebpush-backed sender, run in a worker thread"""

    def __init__(
        self,
        private_key: Optional[str] = None,
        email: Optional[str] = None,
        ttl: Optional[int] = None,
    ):
        self.private_key = private_key or settings.VAPID_PRIVATE_KEY
        self.email = email or settings.VAPID_EMAIL
        self.ttl = ttl if ttl is not None else settings.PUSH_TTL_SECONDS

    def _send_sync(self, subscription_info: Dict[str, Any], data: str) -> None:
        if not self.private_key:
            raise PushConfigurationError("VAPID keys not configured")
        try:
            webpush(
                subscription_info=subscription_info,
                data=data,
                vapid_private_key=self.private_key,
                vapid_claims={"sub": f"mailto:{self.email}"},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise DeliveryError(str(e), status_code) from e

    async def send(self, subscription_info: Dict[str, Any], data: str) -> None:
        await asyncio.to_thread(self._send_sync, subscription_info, data)

@dataclass(frozen=True)
class PushPresentation:
    icon: str
    actions: Tuple[Dict[str, str], ...]
    require_interaction: bool = False

def _actions(action: str, title: str) -> Tuple[Dict[str, str], ...]:
    return (
        {"action": action, "title": title, "icon": VIEW_ICON},
        {"action": "dismiss", "title": "Dismiss"},
    )

DEFAULT_PRESENTATION = PushPresentation(icon=settings.PUSH_DEFAULT_ICON, actions=_actions("view", "View"))

PRESENTATION: Mapping[str, PushPresentation] = MappingProxyType({
    NotificationType.ORDER_STATUS_CHANGE.value: PushPresentation(
        icon="/icons/order-icon.png", actions=_actions("view_order", "View Order")),
    NotificationType.PICKUP_READY.value: PushPresentation(
        icon="/icons/pickup-icon.png", actions=_actions("view_pickup", "View Details"), require_interaction=True),
    NotificationType.NEW_ORDER_VENDOR.value: PushPresentation(
        icon="/icons/vendor-icon.png", actions=_actions("view_vendor_orders", "View Orders"), require_interaction=True),
    NotificationType.REFUND_PROCESSED.value: PushPresentation(
        icon="/icons/refund-icon.png", actions=_actions("view_refunds", "View Refunds")),
})

def build_payload(
    title: str,
    body: str,
    icon: Optional[str] = None,
    badge: Optional[str] = None,
    tag: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    actions: Optional[List[Dict[str, str]]] = None,
    require_interaction: bool = False,
) -> Dict[str, Any]:
    """Payload read by the service worker, with defaults filled in"""
    return {
        "title": title,
        "body": body,
        "icon": icon or settings.PUSH_DEFAULT_ICON,
        "badge": badge or settings.PUSH_DEFAULT_BADGE,
        "tag": tag or DEFAULT_TAG,
        "data": data or {},
        "actions": list(actions) if actions else list(DEFAULT_PRESENTATION.actions),
        "requireInteraction": require_interaction,
        "timestamp": int(utcnow().timestamp() * 1000),
    }

def payload_for_notification(notification: Notification) -> Dict[str, Any]:
    """Type-specific payload for a stored notification"""
    presentation = PRESENTATION.get(notification.type, DEFAULT_PRESENTATION)
    data = {
        "notificationId": str(notification.id),
        "type": notification.type,
        "url": notification.reference_url or DEFAULT_URL,
    }
    if notification.order_id:
        data["orderId"] = str(notification.order_id)
    if notification.return_id:
        data["returnId"] = str(notification.return_id)

    return build_payload(
        title=notification.title,
        body=notification.message,
        icon=presentation.icon,
        tag=f"notification-{notification.id}",
        data=data,
        actions=list(presentation.actions),
        require_interaction=presentation.require_interaction,
    )

class WebPushService:
    """Subscription lifecycle and delivery for one session"""

    def __init__(self, db: AsyncSession, sender: Optional[WebPushSender] = None):
        self.db = db
        self.sender = sender or PyWebPushSender()
        self.preferences = NotificationPreferenceService(db)

    async def save_subscription(
        self,
        user_id: Union[str, uuid.UUID],
        endpoint: str,
        p256dh_key: str,
        auth_key: str,
        user_agent: Optional[str] = None,
    ) -> PushSubscription:
        """Upsert keyed by (user, endpoint); re-subscribing reactivates the row"""
        if not endpoint or not p256dh_key or not auth_key:
            raise ValueError("Subscription requires endpoint, p256dh and auth keys")

        user_uuid = coerce_uuid(user_id)
        stmt = select(PushSubscription).where(
            and_(PushSubscription.user_id == user_uuid, PushSubscription.endpoint == endpoint)
        )
        subscription = (await self.db.execute(stmt)).scalar_one_or_none()

        if subscription:
            subscription.p256dh_key = p256dh_key
            subscription.auth_key = auth_key
            subscription.user_agent = user_agent
            subscription.is_active = True
            subscription.last_used_at = utcnow()
        else:
            subscription = PushSubscription(
                user_id=user_uuid,
                endpoint=endpoint,
                p256dh_key=p256dh_key,
                auth_key=auth_key,
                user_agent=user_agent,
                is_active=True,
                last_used_at=utcnow(),
            )
            self.db.add(subscription)

        await self.db.flush()
        logger.info(f"Push subscription saved for user {user_id}")
        return subscription

    async def remove_subscription(self, user_id: Union[str, uuid.UUID], endpoint: str) -> int:
        """Explicit unsubscribe; the only hard delete of a subscription"""
        result = await self.db.execute(
            delete(PushSubscription).where(
                and_(
                    PushSubscription.user_id == coerce_uuid(user_id),
                    PushSubscription.endpoint == endpoint,
                )
            )
        )
        logger.info(f"Push subscription removed for user {user_id}")
        return result.rowcount or 0

    async def list_subscriptions(
        self,
        user_id: Union[str, uuid.UUID],
        active_only: bool = True,
    ) -> List[PushSubscription]:
        stmt = select(PushSubscription).where(PushSubscription.user_id == coerce_uuid(user_id))
        if active_only:
            stmt = stmt.where(PushSubscription.is_active.is_(True))
        stmt = stmt.order_by(PushSubscription.created_at)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _deliver(self, subscription: PushSubscription, body: str) -> Optional[DeliveryError]:
        info = subscription.subscription_info()
        info["endpoint"] = normalize_endpoint(info["endpoint"])
        try:
            await self.sender.send(info, body)
        except DeliveryError as e:
            return e
        except Exception as e:
            return DeliveryError(str(e))
        return None

    async def send(self, user_id: Union[str, uuid.UUID], payload: Dict[str, Any]) -> NotificationResult:
        """
        Send a payload to all active subscriptions of a user

        Success means at least one endpoint received it, or the user has
        no endpoints at all.
        """
        if not settings.push_configured:
            logger.error("VAPID keys not configured, push delivery disabled")
            return NotificationResult.failure("VAPID keys not configured")

        subscriptions = await self.list_subscriptions(user_id)
        if not subscriptions:
            logger.info(f"No active push subscriptions for user {user_id}")
            return NotificationResult.ok(sent=0)

        body = json.dumps(payload)
        outcomes = await asyncio.gather(*(self._deliver(s, body) for s in subscriptions))

        sent = 0
        errors = []
        now = utcnow()
        for subscription, error in zip(subscriptions, outcomes):
            if error is None:
                sent += 1
                subscription.last_used_at = now
                continue

            errors.append(str(error))
            if error.permanent:
                logger.info(f"Deactivating push subscription {subscription.id} ({error.status_code})")
                subscription.is_active = False
            else:
                logger.warning(f"Transient push failure for subscription {subscription.id}: {error}")

        await self.db.flush()

        logger.info(f"Push summary for user {user_id}: sent {sent}, failed {len(errors)}")
        if not errors:
            return NotificationResult.ok(sent=sent)

        message = f"Failed to send to {len(errors)} subscriptions"
        return NotificationResult(
            success=sent > 0,
            error=message,
            sent=sent,
            errors=tuple(errors),
        )

    async def send_typed(self, user_id: Union[str, uuid.UUID], notification: Notification) -> NotificationResult:
        """Push a stored notification, honouring the PUSH preference"""
        if not await self.preferences.is_enabled(user_id, notification.type, NotificationChannel.PUSH):
            return NotificationResult.skip("Push disabled by user preference")
        return await self.send(user_id, payload_for_notification(notification))

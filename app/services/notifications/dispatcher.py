"""Multi-channel dispatch of a rendered template"""

from typing import Any, Dict, Iterable, Mapping, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
import uuid
import logging

from app.models.notification import NotificationChannel
from .errors import UnsupportedChannelError
from .preferences import normalize_channel
from .push import WebPushService, WebPushSender, build_payload
from .results import NotificationResult
from .store import NotificationStore
from .templates import render

logger = logging.getLogger(__name__)

class NotificationDispatcher:
    """
    Render once, deliver per channel

    IN_APP goes to the store and PUSH to the push service. EMAIL and SMS
    have no transport and come back as explicit failures.
    """

    def __init__(self, db: AsyncSession, push_sender: Optional[WebPushSender] = None):
        self.db = db
        self.store = NotificationStore(db)
        self.push = WebPushService(db, sender=push_sender)

    async def dispatch(
        self,
        user_id: Union[str, uuid.UUID],
        template_key: str,
        data: Optional[Mapping[str, Any]] = None,
        channels: Iterable[Union[NotificationChannel, str]] = (NotificationChannel.IN_APP,),
        order_id: Optional[Union[str, uuid.UUID]] = None,
        return_id: Optional[Union[str, uuid.UUID]] = None,
        reference_url: Optional[str] = None,
    ) -> Dict[str, NotificationResult]:
        rendered = render(template_key, data)
        results: Dict[str, NotificationResult] = {}
        notification = None

        for channel in channels:
            channel = normalize_channel(channel)
            try:
                if channel == NotificationChannel.IN_APP.value:
                    notification = await self.store.create(
                        user_id=user_id,
                        title=rendered.title,
                        message=rendered.message,
                        type=rendered.type,
                        order_id=order_id,
                        return_id=return_id,
                        reference_url=reference_url,
                    )
                    results[channel] = (
                        NotificationResult.ok(notification_id=str(notification.id), created=1)
                        if notification
                        else NotificationResult.skip("In-app notifications disabled by user preference")
                    )
                elif channel == NotificationChannel.PUSH.value:
                    results[channel] = await self._push(user_id, rendered, notification, order_id, return_id, reference_url)
                else:
                    raise UnsupportedChannelError(channel)
            except UnsupportedChannelError as e:
                logger.warning(f"Dispatch of {template_key} to user {user_id}: {e}")
                results[channel] = NotificationResult.failure(str(e))
            except Exception as e:
                logger.error(f"Dispatch of {template_key} over {channel} failed: {e}")
                results[channel] = NotificationResult.failure(str(e))

        return results

    async def _push(self, user_id, rendered, notification, order_id, return_id, reference_url) -> NotificationResult:
        if notification is not None:
            return await self.push.send_typed(user_id, notification)

        if not await self.push.preferences.is_enabled(user_id, rendered.type, NotificationChannel.PUSH):
            return NotificationResult.skip("Push disabled by user preference")

        data = {"type": rendered.type.value, "url": reference_url or "/notifications"}
        if order_id:
            data["orderId"] = str(order_id)
        if return_id:
            data["returnId"] = str(return_id)
        return await self.push.send(user_id, build_payload(rendered.title, rendered.message, data=data))

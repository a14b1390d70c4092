"""Notification preference gate and preference management"""

from typing import Iterable, List, Mapping, Union, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_
import uuid
import logging

from app.models.notification import NotificationPreference, NotificationType, NotificationChannel
from app.utils.helpers import coerce_uuid

logger = logging.getLogger(__name__)

TypeLike = Union[NotificationType, str]
ChannelLike = Union[NotificationChannel, str]

def normalize_type(value: TypeLike) -> str:
    """Validate a notification type; raises ValueError for unknown tags"""
    return NotificationType(value).value

def normalize_channel(value: ChannelLike) -> str:
    """Validate a channel; raises ValueError for unknown channels"""
    return NotificationChannel(value).value

class NotificationPreferenceService:
    """Per-user opt-in flags keyed by (type, channel)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_enabled(
        self,
        user_id: Union[str, uuid.UUID],
        type: TypeLike,
        channel: ChannelLike = NotificationChannel.IN_APP,
    ) -> bool:
        """
        True unless an explicit disabling row exists

        Lookup failures are logged and treated as enabled so a store
        hiccup never silences notifications. The lookup runs in a
        savepoint so a failed query does not abort the caller's transaction.
        """
        try:
            stmt = select(NotificationPreference.enabled).where(
                and_(
                    NotificationPreference.user_id == coerce_uuid(user_id),
                    NotificationPreference.type == normalize_type(type),
                    NotificationPreference.channel == normalize_channel(channel),
                )
            )
            async with self.db.begin_nested():
                enabled = (await self.db.execute(stmt)).scalar_one_or_none()
        except Exception as e:
            logger.error(f"Preference check failed for user {user_id} ({type}/{channel}), defaulting to enabled: {e}")
            return True

        return True if enabled is None else bool(enabled)

    async def list_preferences(self, user_id: Union[str, uuid.UUID]) -> List[NotificationPreference]:
        stmt = (
            select(NotificationPreference)
            .where(NotificationPreference.user_id == coerce_uuid(user_id))
            .order_by(NotificationPreference.type, NotificationPreference.channel)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def set_preference(
        self,
        user_id: Union[str, uuid.UUID],
        type: TypeLike,
        channel: ChannelLike,
        enabled: bool,
    ) -> NotificationPreference:
        """Upsert the flag for (user, type, channel)"""
        user_uuid = coerce_uuid(user_id)
        type_value = normalize_type(type)
        channel_value = normalize_channel(channel)

        stmt = select(NotificationPreference).where(
            and_(
                NotificationPreference.user_id == user_uuid,
                NotificationPreference.type == type_value,
                NotificationPreference.channel == channel_value,
            )
        )
        preference = (await self.db.execute(stmt)).scalar_one_or_none()

        if preference:
            preference.enabled = enabled
        else:
            preference = NotificationPreference(
                user_id=user_uuid,
                type=type_value,
                channel=channel_value,
                enabled=enabled,
            )
            self.db.add(preference)

        await self.db.flush()
        return preference

    async def update_preferences(
        self,
        user_id: Union[str, uuid.UUID],
        preferences: Iterable[Mapping[str, Any]],
    ) -> List[NotificationPreference]:
        """Bulk upsert of {type, channel, enabled} entries"""
        return [
            await self.set_preference(user_id, item["type"], item["channel"], bool(item["enabled"]))
            for item in preferences
        ]

    async def reset_to_defaults(self, user_id: Union[str, uuid.UUID]) -> int:
        """Drop every override so all types revert to enabled"""
        result = await self.db.execute(
            delete(NotificationPreference).where(NotificationPreference.user_id == coerce_uuid(user_id))
        )
        logger.info(f"Reset {result.rowcount} notification preferences for user {user_id}")
        return result.rowcount or 0

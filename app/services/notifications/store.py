"""
Notification store

CRUD over Notification rows. Creation is gated by the user's IN_APP
preference; a disabled preference is a skip, not an error. Backing-store
failures surface as StoreError.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, List, Mapping, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, update, func, and_
import uuid
import logging

from app.models.notification import Notification, NotificationChannel, NotificationType
from app.utils.helpers import coerce_uuid, utcnow
from app.utils.pagination import Page, paginate
from .errors import StoreError, NotFoundError
from .preferences import NotificationPreferenceService, normalize_type
from .realtime import record_event, INSERT, UPDATE, DELETE, BULK_UPDATE
from .templates import render

logger = logging.getLogger(__name__)

IdLike = Union[str, uuid.UUID]

@dataclass(frozen=True)
class NewNotification:
    """Arguments for one notification row"""

    user_id: IdLike
    title: str
    message: str
    type: Union[NotificationType, str]
    order_id: Optional[IdLike] = None
    return_id: Optional[IdLike] = None
    reference_url: Optional[str] = None

@dataclass(frozen=True)
class BatchResult:
    created: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

class NotificationStore:
    """Persistence for in-app notifications"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.preferences = NotificationPreferenceService(db)

    @contextmanager
    def _store_errors(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Notification store failed to {action}: {e}")
            raise StoreError(f"Failed to {action}: {e}") from e

    def _build(self, item: NewNotification) -> Notification:
        return Notification(
            id=uuid.uuid4(),
            user_id=coerce_uuid(item.user_id),
            title=item.title,
            message=item.message,
            type=normalize_type(item.type),
            order_id=coerce_uuid(item.order_id) if item.order_id else None,
            return_id=coerce_uuid(item.return_id) if item.return_id else None,
            reference_url=item.reference_url,
            is_read=False,
            created_at=utcnow(),
        )

    async def _insert(self, rows: List[Notification]) -> None:
        # Savepoint keeps a failed insert from poisoning the caller's transaction
        with self._store_errors("create notifications"):
            async with self.db.begin_nested():
                self.db.add_all(rows)

        for row in rows:
            record_event(self.db, INSERT, row.user_id, row.to_dict())

    async def create(
        self,
        user_id: IdLike,
        title: str,
        message: str,
        type: Union[NotificationType, str],
        order_id: Optional[IdLike] = None,
        return_id: Optional[IdLike] = None,
        reference_url: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Persist one unread notification

        Returns None, without writing, when the user disabled this type
        for the IN_APP channel.
        """
        item = NewNotification(user_id, title, message, type, order_id, return_id, reference_url)

        if not await self.preferences.is_enabled(item.user_id, item.type, NotificationChannel.IN_APP):
            logger.info(f"Preference disabled for user {user_id} and type {type}, skipping")
            return None

        row = self._build(item)
        await self._insert([row])
        return row

    async def create_from_template(
        self,
        template_key: str,
        user_id: IdLike,
        data: Optional[Mapping[str, Any]] = None,
        order_id: Optional[IdLike] = None,
        return_id: Optional[IdLike] = None,
        reference_url: Optional[str] = None,
    ) -> Optional[Notification]:
        """Render a template and create the notification"""
        rendered = render(template_key, data)
        return await self.create(
            user_id=user_id,
            title=rendered.title,
            message=rendered.message,
            type=rendered.type,
            order_id=order_id,
            return_id=return_id,
            reference_url=reference_url,
        )

    async def create_batch(self, items: Iterable[NewNotification]) -> BatchResult:
        """
        Persist many notifications with a single bulk insert

        Recipients who disabled the type are left out. The insert is all
        or nothing; a failure is reported as one aggregate error.
        """
        items = list(items)
        rows = []
        skipped = 0
        for item in items:
            if await self.preferences.is_enabled(item.user_id, item.type, NotificationChannel.IN_APP):
                rows.append(self._build(item))
            else:
                skipped += 1

        if not rows:
            return BatchResult(created=0, skipped=skipped)

        logger.info(f"Creating batch of {len(rows)} notifications")
        try:
            await self._insert(rows)
        except StoreError as e:
            return BatchResult(created=0, skipped=skipped, errors=[str(e)])

        return BatchResult(created=len(rows), skipped=skipped)

    async def get(self, notification_id: IdLike) -> Notification:
        with self._store_errors("load notification"):
            notification = await self.db.get(Notification, coerce_uuid(notification_id))
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification

    async def list(
        self,
        user_id: IdLike,
        page: int = 1,
        limit: int = 10,
        unread_only: bool = False,
    ) -> Page:
        """Newest first, page/limit pagination"""
        page = max(page or 1, 1)
        limit = max(limit or 10, 1)

        query = select(Notification).where(Notification.user_id == coerce_uuid(user_id))
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())

        with self._store_errors("list notifications"):
            return await paginate(self.db, query, page=page, limit=limit)

    async def mark_read(self, notification_id: IdLike) -> Notification:
        """Idempotent: an already read notification is returned unchanged"""
        notification = await self.get(notification_id)
        if notification.is_read:
            return notification

        with self._store_errors("mark notification as read"):
            notification.is_read = True
            notification.read_at = utcnow()
            await self.db.flush()

        record_event(self.db, UPDATE, notification.user_id, notification.to_dict())
        return notification

    async def mark_unread(self, notification_id: IdLike) -> Notification:
        """Explicit mark-unread action; the only read -> unread transition"""
        notification = await self.get(notification_id)
        if not notification.is_read:
            return notification

        with self._store_errors("mark notification as unread"):
            notification.is_read = False
            notification.read_at = None
            await self.db.flush()

        record_event(self.db, UPDATE, notification.user_id, notification.to_dict())
        return notification

    def _filtered(self, user_id: IdLike, type: Optional[str] = None, max_age_days: Optional[int] = None):
        conditions = [Notification.user_id == coerce_uuid(user_id)]
        if type:
            conditions.append(Notification.type == normalize_type(type))
        if max_age_days:
            conditions.append(Notification.created_at >= utcnow() - timedelta(days=max_age_days))
        return conditions

    async def mark_all_read(
        self,
        user_id: IdLike,
        type: Optional[str] = None,
        max_age_days: Optional[int] = None,
    ) -> int:
        """Set every matching unread row to read; returns rows changed"""
        conditions = self._filtered(user_id, type, max_age_days)
        stmt = (
            update(Notification)
            .where(and_(*conditions, Notification.is_read.is_(False)))
            .values(is_read=True, read_at=utcnow(), updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        with self._store_errors("mark all notifications as read"):
            result = await self.db.execute(stmt)

        updated = result.rowcount or 0
        if updated:
            record_event(self.db, BULK_UPDATE, user_id, {"is_read": True, "updated": updated})
        return updated

    async def mark_all_unread(self, user_id: IdLike) -> int:
        stmt = (
            update(Notification)
            .where(and_(Notification.user_id == coerce_uuid(user_id), Notification.is_read.is_(True)))
            .values(is_read=False, read_at=None, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        with self._store_errors("mark all notifications as unread"):
            result = await self.db.execute(stmt)

        updated = result.rowcount or 0
        if updated:
            record_event(self.db, BULK_UPDATE, user_id, {"is_read": False, "updated": updated})
        return updated

    async def unread_count(
        self,
        user_id: IdLike,
        type: Optional[str] = None,
        max_age_days: Optional[int] = None,
    ) -> int:
        conditions = self._filtered(user_id, type, max_age_days)
        stmt = select(func.count(Notification.id)).where(and_(*conditions, Notification.is_read.is_(False)))
        with self._store_errors("count unread notifications"):
            return (await self.db.scalar(stmt)) or 0

    async def delete(self, notification_id: IdLike) -> None:
        notification = await self.get(notification_id)
        user_id = notification.user_id

        with self._store_errors("delete notification"):
            await self.db.delete(notification)
            await self.db.flush()

        record_event(self.db, DELETE, user_id, {"id": str(notification_id)})

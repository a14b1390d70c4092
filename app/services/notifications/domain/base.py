"""Shared plumbing for the domain notifiers"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import uuid
import logging

from app.models.order import Order
from app.models.user import User, UserRole, Customer, Agent
from app.models.seller import Vendor
from app.utils.helpers import coerce_uuid
from ..errors import NotFoundError, RecipientUnresolvedError
from ..results import NotificationResult
from ..store import NotificationStore, NewNotification
from ..templates import render

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")
IdLike = Union[str, uuid.UUID]

class BaseNotifier:
    """Context loading, recipient resolution and persistence helpers"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = NotificationStore(db)

    async def _load(self, model: Type[ModelT], object_id: IdLike, *options) -> ModelT:
        """Load one row by id with eager-load options; NotFoundError when missing"""
        stmt = select(model).where(model.id == coerce_uuid(object_id))
        if options:
            stmt = stmt.options(*options)
        row = (await self.db.execute(stmt)).scalars().first()
        if row is None:
            raise NotFoundError(f"{model.__name__} {object_id} not found")
        return row

    async def _user_id_of(self, model: Type[ModelT], object_id: Optional[IdLike]) -> uuid.UUID:
        label = model.__name__
        if object_id is None:
            raise RecipientUnresolvedError(f"No {label.lower()} linked")
        row = await self.db.get(model, coerce_uuid(object_id))
        if row is None or row.user_id is None:
            raise RecipientUnresolvedError(f"{label} {object_id} has no linked user")
        return row.user_id

    async def customer_user_id(self, customer_id: Optional[IdLike]) -> uuid.UUID:
        return await self._user_id_of(Customer, customer_id)

    async def vendor_user_id(self, vendor_id: Optional[IdLike]) -> uuid.UUID:
        return await self._user_id_of(Vendor, vendor_id)

    async def agent_user_id(self, agent_id: Optional[IdLike]) -> uuid.UUID:
        return await self._user_id_of(Agent, agent_id)

    async def vendor_user_ids(self, vendor_ids: Iterable[IdLike]) -> Dict[uuid.UUID, uuid.UUID]:
        """vendor id -> user id, leaving out vendors without a linked user"""
        ids = {coerce_uuid(v) for v in vendor_ids}
        if not ids:
            return {}
        result = await self.db.execute(select(Vendor.id, Vendor.user_id).where(Vendor.id.in_(ids)))
        mapping = {vendor_id: user_id for vendor_id, user_id in result.all() if user_id is not None}
        for vendor_id in ids - mapping.keys():
            logger.warning(f"No user found for vendor {vendor_id}, skipping")
        return mapping

    async def order_reference(self, order_id: IdLike) -> str:
        """Display id of an order for message bodies; the raw id when the order is gone"""
        order: Optional[Order] = await self.db.get(Order, coerce_uuid(order_id))
        return order.display_id if order is not None else str(order_id)

    async def admin_user_ids(self) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(User.id).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
        )
        return list(result.scalars().all())

    def _draft(
        self,
        template_key: str,
        user_id: IdLike,
        data: Optional[Mapping[str, Any]] = None,
        order_id: Optional[IdLike] = None,
        return_id: Optional[IdLike] = None,
        reference_url: Optional[str] = None,
    ) -> NewNotification:
        rendered = render(template_key, data)
        return NewNotification(
            user_id=user_id,
            title=rendered.title,
            message=rendered.message,
            type=rendered.type,
            order_id=order_id,
            return_id=return_id,
            reference_url=reference_url,
        )

    async def _notify(
        self,
        template_key: str,
        user_id: IdLike,
        data: Optional[Mapping[str, Any]] = None,
        order_id: Optional[IdLike] = None,
        return_id: Optional[IdLike] = None,
        reference_url: Optional[str] = None,
    ) -> NotificationResult:
        notification = await self.store.create_from_template(
            template_key,
            user_id,
            data,
            order_id=order_id,
            return_id=return_id,
            reference_url=reference_url,
        )
        if notification is None:
            return NotificationResult.skip("Disabled by user preference")
        return NotificationResult.ok(notification_id=str(notification.id), created=1)

    async def _notify_many(self, drafts: List[NewNotification], label: str = "notification") -> NotificationResult:
        """Single bulk insert for a fan-out; zero recipients is a success"""
        if not drafts:
            logger.info(f"No recipients for {label}")
            return NotificationResult.ok()

        batch = await self.store.create_batch(drafts)
        if not batch.success:
            return NotificationResult.failure(
                f"Failed to create batch notifications: {', '.join(batch.errors)}",
                errors=batch.errors,
            )

        logger.info(f"Sent {label} to {batch.created} recipients")
        return NotificationResult.ok(created=batch.created)

def group_by_vendor(items: Iterable[Any]) -> Dict[uuid.UUID, List[Any]]:
    """Order items grouped by vendor, in first-seen order"""
    groups: Dict[uuid.UUID, List[Any]] = {}
    for item in items:
        groups.setdefault(item.vendor_id, []).append(item)
    return groups

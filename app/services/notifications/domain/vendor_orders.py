"""Vendor-facing order notifications (fan-out per vendor)"""

from decimal import Decimal
from typing import Union
from sqlalchemy import select
from sqlalchemy.orm import selectinload
import logging

from app.models.order import Order, OrderItem, OrderItemStatus, OrderStatus
from app.utils.helpers import coerce_uuid
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike, group_by_vendor

logger = logging.getLogger(__name__)

# Vendors only hear about these status changes
VENDOR_VISIBLE_STATUSES = (OrderStatus.CANCELLED.value, OrderStatus.READY_FOR_PICKUP.value)

def vendor_order_url(order_id) -> str:
    return f"/vendor/orders/{order_id}"

class VendorOrderNotifier(BaseNotifier):

    @safe_notify
    async def send_new_order_notification_to_vendors(self, order_id: IdLike) -> NotificationResult:
        """
        One NEW_ORDER_VENDOR per vendor with items in the order

        Each message carries that vendor's item count and total. Vendors
        without a linked user are skipped.
        """
        order = await self._load(Order, order_id, selectinload(Order.items))
        groups = group_by_vendor(order.items)
        user_ids = await self.vendor_user_ids(groups.keys())

        drafts = []
        for vendor_id, items in groups.items():
            if vendor_id not in user_ids:
                continue
            vendor_total = sum((Decimal(str(i.price or 0)) * (i.quantity or 0) for i in items), Decimal("0"))
            drafts.append(self._draft(
                "NEW_ORDER_VENDOR",
                user_ids[vendor_id],
                {"order_id": order.display_id, "item_count": len(items), "total_amount": vendor_total},
                order_id=order.id,
                reference_url=vendor_order_url(order.id),
            ))

        return await self._notify_many(drafts, label=f"new order {order_id}")

    @safe_notify
    async def send_order_processing_reminder(self, order_id: IdLike) -> NotificationResult:
        """Remind vendors that still have PENDING items in the order"""
        result = await self.db.execute(
            select(OrderItem)
            .options(selectinload(OrderItem.product))
            .where(OrderItem.order_id == coerce_uuid(order_id), OrderItem.status == OrderItemStatus.PENDING)
        )
        items = list(result.scalars().all())
        if not items:
            return NotificationResult.ok()

        groups = group_by_vendor(items)
        user_ids = await self.vendor_user_ids(groups.keys())

        order_ref = await self.order_reference(order_id)
        drafts = [
            self._draft(
                "ORDER_PROCESSING_REMINDER",
                user_ids[vendor_id],
                {
                    "order_id": order_ref,
                    "pending_items": [i.product.name for i in vendor_items if i.product is not None],
                },
                order_id=order_id,
                reference_url=vendor_order_url(order_id),
            )
            for vendor_id, vendor_items in groups.items()
            if vendor_id in user_ids
        ]
        return await self._notify_many(drafts, label=f"processing reminder for order {order_id}")

    @safe_notify
    async def notify_vendors_order_status_change(
        self,
        order_id: IdLike,
        status: Union[OrderStatus, str],
    ) -> NotificationResult:
        status = getattr(status, "value", status)
        if status not in VENDOR_VISIBLE_STATUSES:
            return NotificationResult.skip(f"Vendors are not notified of {status}")

        result = await self.db.execute(select(OrderItem.vendor_id).where(OrderItem.order_id == coerce_uuid(order_id)).distinct())
        user_ids = await self.vendor_user_ids(result.scalars().all())

        order_ref = await self.order_reference(order_id)
        drafts = [
            self._draft(
                "VENDOR_ORDER_STATUS_CHANGE",
                user_id,
                {"order_id": order_ref, "status": status},
                order_id=order_id,
                reference_url=vendor_order_url(order_id),
            )
            for user_id in user_ids.values()
        ]
        return await self._notify_many(drafts, label=f"status change of order {order_id}")

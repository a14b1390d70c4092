"""Payment notifications for customers and vendors"""

from decimal import Decimal
from typing import Optional, Union
from sqlalchemy.orm import selectinload
import logging

from app.models.order import Order, PaymentStatus
from ..errors import NotificationError
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike, group_by_vendor

logger = logging.getLogger(__name__)

def vendor_earnings(items) -> Decimal:
    """Sum of line totals less the platform commission"""
    total = Decimal("0")
    for item in items:
        line = Decimal(str(item.price or 0)) * (item.quantity or 0)
        total += line - Decimal(str(item.commission_amount or 0))
    return total

class PaymentNotifier(BaseNotifier):

    @safe_notify
    async def send_payment_success(self, order_id: IdLike) -> NotificationResult:
        order = await self._load(Order, order_id)
        user_id = await self.customer_user_id(order.customer_id)
        return await self._notify(
            "PAYMENT_SUCCESS",
            user_id,
            {
                "order_id": order.display_id,
                "total_amount": order.total_amount,
                "payment_method": order.payment_method,
                "payment_reference": order.payment_reference,
            },
            order_id=order.id,
            reference_url=f"/customer/orders/{order.id}",
        )

    @safe_notify
    async def send_payment_failed(self, order_id: IdLike, reason: Optional[str] = None) -> NotificationResult:
        order = await self._load(Order, order_id)
        user_id = await self.customer_user_id(order.customer_id)
        return await self._notify(
            "PAYMENT_FAILED",
            user_id,
            {"order_id": order.display_id, "total_amount": order.total_amount, "reason": reason},
            order_id=order.id,
            reference_url=f"/customer/orders/{order.id}",
        )

    @safe_notify
    async def send_payment_received_to_vendors(self, order_id: IdLike) -> NotificationResult:
        """One PAYMENT_RECEIVED per vendor with that vendor's net earnings"""
        order = await self._load(Order, order_id, selectinload(Order.items))
        if not order.items:
            raise NotificationError("No order items found")

        groups = group_by_vendor(order.items)
        user_ids = await self.vendor_user_ids(groups.keys())

        drafts = [
            self._draft(
                "PAYMENT_RECEIVED",
                user_ids[vendor_id],
                {"order_id": order.display_id, "earnings": vendor_earnings(items)},
                order_id=order.id,
                reference_url=f"/vendor/orders/{order.id}",
            )
            for vendor_id, items in groups.items()
            if vendor_id in user_ids
        ]
        if not drafts:
            raise NotificationError("No vendor notifications to send")

        return await self._notify_many(drafts, label=f"payment received for order {order_id}")

    @safe_notify
    async def notify_payment_status_change(
        self,
        order_id: IdLike,
        payment_status: Union[PaymentStatus, str],
        reason: Optional[str] = None,
    ) -> NotificationResult:
        """COMPLETED notifies the customer and the vendors; FAILED the customer"""
        payment_status = getattr(payment_status, "value", payment_status)

        if payment_status == PaymentStatus.COMPLETED.value:
            customer = await self.send_payment_success(order_id)
            vendors = await self.send_payment_received_to_vendors(order_id)
            for outcome in (customer, vendors):
                if not outcome.success:
                    logger.error(f"Payment notification for order {order_id} failed: {outcome.error}")
            return NotificationResult.combine([customer, vendors])

        if payment_status == PaymentStatus.FAILED.value:
            return await self.send_payment_failed(order_id, reason)

        logger.info(f"No notification needed for payment status {payment_status}")
        return NotificationResult.skip(f"No notification for payment status {payment_status}")

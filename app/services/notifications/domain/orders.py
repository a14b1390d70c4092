"""Customer-facing order lifecycle notifications"""

from typing import Optional, Union
import logging

from app.models.order import Order, OrderStatus
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike
from .payments import PaymentNotifier

logger = logging.getLogger(__name__)

STATUS_TEMPLATES = {
    OrderStatus.PROCESSING.value: "ORDER_PROCESSING",
    OrderStatus.READY_FOR_PICKUP.value: "ORDER_READY_FOR_PICKUP",
    OrderStatus.SHIPPED.value: "ORDER_SHIPPED",
    OrderStatus.DELIVERED.value: "ORDER_DELIVERED",
    OrderStatus.CANCELLED.value: "ORDER_CANCELLED",
}

def customer_order_url(order_id) -> str:
    return f"/customer/orders/{order_id}"

class OrderNotifier(BaseNotifier):
    """Notifications sent to the customer who placed an order"""

    async def _send(self, template_key: str, order: Order, **data) -> NotificationResult:
        user_id = await self.customer_user_id(order.customer_id)
        return await self._notify(
            template_key,
            user_id,
            {"order_id": order.display_id, **data},
            order_id=order.id,
            reference_url=customer_order_url(order.id),
        )

    @safe_notify
    async def send_order_confirmation(self, order_id: IdLike) -> NotificationResult:
        order = await self._load(Order, order_id)
        return await self._send("ORDER_CONFIRMATION", order, total_amount=order.total_amount)

    @safe_notify
    async def send_order_status_change(self, order_id: IdLike, status: Union[OrderStatus, str]) -> NotificationResult:
        """Status-specific template; unknown statuses fall back to the confirmation text"""
        status = getattr(status, "value", status)
        order = await self._load(Order, order_id)
        template_key = STATUS_TEMPLATES.get(status, "ORDER_CONFIRMATION")
        return await self._send(template_key, order, status=status, pickup_code=order.pickup_code)

    @safe_notify
    async def send_pickup_ready(self, order_id: IdLike) -> NotificationResult:
        order = await self._load(Order, order_id)
        return await self._send("ORDER_READY_FOR_PICKUP", order, pickup_code=order.pickup_code)

    @safe_notify
    async def send_order_picked_up(self, order_id: IdLike) -> NotificationResult:
        order = await self._load(Order, order_id)
        return await self._send("ORDER_PICKED_UP", order)

    @safe_notify
    async def handle_order_lifecycle(self, order_id: IdLike, event: str, reason: Optional[str] = None) -> NotificationResult:
        """
        Route an order event to its notification

        Events: "created", "paid", "payment_failed", "pickup_ready",
        "picked_up" and "status:<STATUS>".
        """
        logger.info(f"Handling {event} for order {order_id}")

        if event.startswith("status:"):
            return await self.send_order_status_change(order_id, event.split(":", 1)[1])
        if event == "created":
            return await self.send_order_confirmation(order_id)
        if event == "paid":
            return await PaymentNotifier(self.db).send_payment_success(order_id)
        if event == "payment_failed":
            return await PaymentNotifier(self.db).send_payment_failed(order_id, reason)
        if event == "pickup_ready":
            return await self.send_pickup_ready(order_id)
        if event == "picked_up":
            return await self.send_order_picked_up(order_id)

        return NotificationResult.failure(f"Unsupported order event: {event}")

"""Refund and return notifications"""

from typing import Optional, Union
from sqlalchemy.orm import joinedload
import logging

from app.models.order import OrderItem
from app.models.refund import RefundRequest, RefundStatus
from app.models.user import Agent
from ..results import NotificationResult, safe_notify
from .agents import AgentNotifier
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

CUSTOMER_REFUNDS_URL = "/customer/refunds"

PROCESSING_TEMPLATES = {
    RefundStatus.PROCESSING.value: "REFUND_PROCESSING",
    RefundStatus.COMPLETED.value: "REFUND_PROCESSED",
}

class RefundNotifier(BaseNotifier):

    async def _load_refund(self, refund_id: IdLike) -> RefundRequest:
        return await self._load(
            RefundRequest,
            refund_id,
            joinedload(RefundRequest.order),
            joinedload(RefundRequest.order_item).joinedload(OrderItem.product),
        )

    def _context(self, refund: RefundRequest, **extra) -> dict:
        order_ref = refund.order.display_id if refund.order is not None else refund.order_id
        return {
            "order_id": order_ref,
            "product_name": refund.product_name,
            "refund_amount": refund.refund_amount,
            **extra,
        }

    async def _notify_customer(self, template_key: str, refund: RefundRequest, **extra) -> NotificationResult:
        user_id = await self.customer_user_id(refund.customer_id)
        return await self._notify(
            template_key,
            user_id,
            self._context(refund, **extra),
            order_id=refund.order_id,
            return_id=refund.id,
            reference_url=CUSTOMER_REFUNDS_URL,
        )

    @safe_notify
    async def send_refund_request_submitted(self, refund_id: IdLike) -> NotificationResult:
        refund = await self._load_refund(refund_id)
        return await self._notify_customer("REFUND_REQUEST_SUBMITTED", refund)

    @safe_notify
    async def send_refund_vendor_action_required(self, refund_id: IdLike) -> NotificationResult:
        refund = await self._load_refund(refund_id)
        vendor_id = refund.vendor_id or (refund.order_item.vendor_id if refund.order_item else None)
        user_id = await self.vendor_user_id(vendor_id)
        return await self._notify(
            "REFUND_VENDOR_ACTION_REQUIRED",
            user_id,
            self._context(refund, reason=refund.reason),
            order_id=refund.order_id,
            return_id=refund.id,
            reference_url="/vendor/refunds",
        )

    @safe_notify
    async def send_refund_approved(self, refund_id: IdLike) -> NotificationResult:
        refund = await self._load_refund(refund_id)
        return await self._notify_customer("REFUND_APPROVED", refund)

    @safe_notify
    async def send_refund_rejected(self, refund_id: IdLike) -> NotificationResult:
        refund = await self._load_refund(refund_id)
        return await self._notify_customer("REFUND_REJECTED", refund, vendor_response=refund.vendor_response)

    @safe_notify
    async def send_refund_processing_update(
        self,
        refund_id: IdLike,
        status: Union[RefundStatus, str],
    ) -> NotificationResult:
        status = getattr(status, "value", status)
        refund = await self._load_refund(refund_id)
        template_key = PROCESSING_TEMPLATES.get(status, "REFUND_STATUS_UPDATE")
        return await self._notify_customer(template_key, refund, status=status.lower())

    @safe_notify
    async def _pickup_scheduled_for_customer(self, refund: RefundRequest, agent: Agent) -> NotificationResult:
        return await self._notify_customer("REFUND_PICKUP_SCHEDULED", refund, agent_name=agent.name)

    @safe_notify
    async def send_refund_pickup_scheduled(self, refund_id: IdLike, agent_id: Optional[IdLike] = None) -> NotificationResult:
        """Tell both customer and agent; succeeds if either one was notified"""
        refund = await self._load_refund(refund_id)
        agent = await self._load(Agent, agent_id or refund.agent_id)

        customer = await self._pickup_scheduled_for_customer(refund, agent)
        agent_result = await AgentNotifier(self.db).send_return_pickup_assignment(refund.id, agent.id)

        result = NotificationResult.combine([customer, agent_result], any_success=True)
        if not result.success:
            return NotificationResult.failure("Failed to send notifications to customer and agent", errors=result.errors)
        return result

    @safe_notify
    async def notify_refund_status_change(
        self,
        refund_id: IdLike,
        status: Union[RefundStatus, str],
    ) -> NotificationResult:
        status = getattr(status, "value", status)

        if status == RefundStatus.REQUESTED.value:
            return NotificationResult.combine([
                await self.send_refund_request_submitted(refund_id),
                await self.send_refund_vendor_action_required(refund_id),
            ])
        if status == RefundStatus.APPROVED.value:
            return await self.send_refund_approved(refund_id)
        if status == RefundStatus.REJECTED.value:
            return await self.send_refund_rejected(refund_id)
        if status == RefundStatus.PICKUP_SCHEDULED.value:
            return await self.send_refund_pickup_scheduled(refund_id)
        return await self.send_refund_processing_update(refund_id, status)

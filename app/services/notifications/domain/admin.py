"""Alerts fanned out to every active admin"""

from decimal import Decimal
from typing import Any, Mapping, Optional
from sqlalchemy.orm import joinedload
import logging

from app.core.config import settings
from app.models.order import Order
from app.models.seller import Vendor, VendorPayout, PayoutStatus
from app.models.user import Customer
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

def _person_name(user, default: str) -> str:
    if user is None:
        return default
    return user.name or user.email or default

class AdminNotifier(BaseNotifier):

    async def _notify_admins(
        self,
        template_key: str,
        data: Mapping[str, Any],
        order_id: Optional[IdLike] = None,
        reference_url: Optional[str] = None,
    ) -> NotificationResult:
        drafts = [
            self._draft(template_key, admin_id, data, order_id=order_id, reference_url=reference_url)
            for admin_id in await self.admin_user_ids()
        ]
        return await self._notify_many(drafts, label=f"{template_key} to admins")

    @safe_notify
    async def send_high_value_order_alert(self, order_id: IdLike, threshold: Any = None) -> NotificationResult:
        threshold = Decimal(str(threshold if threshold is not None else settings.HIGH_VALUE_ORDER_THRESHOLD))
        order = await self._load(Order, order_id, joinedload(Order.customer).joinedload(Customer.user))
        if Decimal(str(order.total_amount or 0)) < threshold:
            return NotificationResult.skip(f"Order total below {threshold}")

        customer_user = order.customer.user if order.customer is not None else None
        return await self._notify_admins(
            "HIGH_VALUE_ORDER_ALERT",
            {
                "order_id": order.display_id,
                "amount": order.total_amount,
                "customer_name": _person_name(customer_user, "Unknown Customer"),
            },
            order_id=order.id,
            reference_url=f"/admin/orders?search={order.display_id}",
        )

    @safe_notify
    async def send_new_vendor_application(self, vendor_id: IdLike) -> NotificationResult:
        vendor = await self._load(Vendor, vendor_id, joinedload(Vendor.user))
        if vendor.is_approved:
            return NotificationResult.skip("Vendor already approved")

        return await self._notify_admins(
            "NEW_VENDOR_APPLICATION",
            {"vendor_name": _person_name(vendor.user, "Unknown User"), "store_name": vendor.store_name},
            reference_url="/admin/vendors?filter=pending",
        )

    @safe_notify
    async def send_payout_request(self, payout_id: IdLike) -> NotificationResult:
        payout = await self._load(
            VendorPayout,
            payout_id,
            joinedload(VendorPayout.vendor).joinedload(Vendor.user),
        )
        if payout.status != PayoutStatus.PENDING:
            return NotificationResult.skip(f"Payout is {payout.status.value}, not pending")

        vendor = payout.vendor
        return await self._notify_admins(
            "PAYOUT_REQUEST",
            {
                "vendor_name": _person_name(vendor.user if vendor else None, "Unknown Vendor"),
                "store_name": vendor.store_name if vendor else None,
                "amount": payout.amount,
            },
            reference_url="/admin/payouts?filter=pending",
        )

    @safe_notify
    async def handle_admin_event(self, event: str, entity_id: IdLike, threshold: Any = None) -> NotificationResult:
        """Events: "high_value_order", "new_vendor_application" and "payout_request" """
        if event == "high_value_order":
            return await self.send_high_value_order_alert(entity_id, threshold)
        if event == "new_vendor_application":
            return await self.send_new_vendor_application(entity_id)
        if event == "payout_request":
            return await self.send_payout_request(entity_id)
        return NotificationResult.failure(f"Unsupported admin event: {event}")

"""Vendor payout notifications"""

from typing import Any, Optional, Union
import logging

from app.models.seller import Vendor, VendorPayout, PayoutHold, PayoutStatus
from app.utils.helpers import format_percentage
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

PAYOUTS_URL = "/vendor/payouts"

class PayoutNotifier(BaseNotifier):

    @safe_notify
    async def send_payout_processed(self, payout_id: IdLike) -> NotificationResult:
        payout = await self._load(VendorPayout, payout_id)
        user_id = await self.vendor_user_id(payout.vendor_id)
        return await self._notify(
            "PAYOUT_PROCESSED",
            user_id,
            {"amount": payout.amount, "reference_id": payout.reference_id},
            reference_url=PAYOUTS_URL,
        )

    @safe_notify
    async def send_payout_failed(self, payout_id: IdLike, reason: Optional[str] = None) -> NotificationResult:
        payout = await self._load(VendorPayout, payout_id)
        user_id = await self.vendor_user_id(payout.vendor_id)
        return await self._notify(
            "PAYOUT_FAILED",
            user_id,
            {"amount": payout.amount, "reason": reason or payout.failure_reason or payout.rejection_reason},
            reference_url=PAYOUTS_URL,
        )

    @safe_notify
    async def send_payout_on_hold(self, hold_id: IdLike) -> NotificationResult:
        hold = await self._load(PayoutHold, hold_id)
        user_id = await self.vendor_user_id(hold.vendor_id)
        return await self._notify(
            "PAYOUT_ON_HOLD",
            user_id,
            {"hold_amount": hold.hold_amount, "reason": hold.reason},
            reference_url=PAYOUTS_URL,
        )

    @safe_notify
    async def send_payout_hold_released(self, hold_id: IdLike) -> NotificationResult:
        hold = await self._load(PayoutHold, hold_id)
        user_id = await self.vendor_user_id(hold.vendor_id)
        return await self._notify(
            "PAYOUT_HOLD_RELEASED",
            user_id,
            {"hold_amount": hold.hold_amount},
            reference_url=PAYOUTS_URL,
        )

    @safe_notify
    async def send_minimum_payout_reached(
        self,
        vendor_id: IdLike,
        current_earnings: Any,
        minimum_threshold: Any = None,
    ) -> NotificationResult:
        vendor = await self._load(Vendor, vendor_id)
        user_id = await self.vendor_user_id(vendor.id)
        return await self._notify(
            "MINIMUM_PAYOUT_REACHED",
            user_id,
            {
                "current_earnings": current_earnings,
                "minimum_threshold": minimum_threshold if minimum_threshold is not None else vendor.minimum_payout,
            },
            reference_url=PAYOUTS_URL,
        )

    @safe_notify
    async def send_commission_rate_changed(self, vendor_id: IdLike, old_rate: Any, new_rate: Any) -> NotificationResult:
        """Rates are fractions (0.05); the message shows percentages (5.0)"""
        user_id = await self.vendor_user_id(vendor_id)
        return await self._notify(
            "COMMISSION_RATE_CHANGED",
            user_id,
            {"old_rate": format_percentage(old_rate), "new_rate": format_percentage(new_rate)},
            reference_url="/vendor/settings",
        )

    @safe_notify
    async def notify_payout_status_change(
        self,
        payout_id: IdLike,
        status: Union[PayoutStatus, str],
        reason: Optional[str] = None,
    ) -> NotificationResult:
        status = getattr(status, "value", status)
        if status == PayoutStatus.COMPLETED.value:
            return await self.send_payout_processed(payout_id)
        if status in (PayoutStatus.FAILED.value, PayoutStatus.REJECTED.value):
            return await self.send_payout_failed(payout_id, reason)

        logger.info(f"No notification needed for payout status {status}")
        return NotificationResult.skip(f"No notification for payout status {status}")

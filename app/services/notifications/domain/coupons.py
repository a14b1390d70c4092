"""Coupon notifications: vendor alerts and customer application results"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional, Union
from sqlalchemy import select
import logging

from app.core.config import settings
from app.models.coupon import Coupon, DiscountType
from app.utils.helpers import coerce_uuid, days_until, format_amount, utcnow
from ..errors import NotificationError
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

COUPONS_URL = "/vendor/coupons"

@dataclass(frozen=True)
class CouponApplication:
    """Outcome of a customer applying a coupon code at checkout"""

    code: str
    success: bool
    discount_amount: Optional[Union[Decimal, int, float]] = None
    order_id: Optional[IdLike] = None
    reason: Optional[str] = None

def discount_text(coupon: Coupon) -> str:
    value = format_amount(coupon.discount_value)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        return f"{value}% off"
    return f"{settings.CURRENCY_SYMBOL}{value} off"

def usage_percentage(usage_count: int, usage_limit: Optional[int]) -> float:
    if not usage_limit:
        return 0.0
    return usage_count / usage_limit * 100

class CouponNotifier(BaseNotifier):

    async def _vendor_alert(self, template_key: str, coupon: Coupon, **data) -> NotificationResult:
        user_id = await self.vendor_user_id(coupon.vendor_id)
        return await self._notify(
            template_key,
            user_id,
            {"code": coupon.code, **data},
            reference_url=COUPONS_URL,
        )

    @safe_notify
    async def send_coupon_created(self, coupon_id: IdLike) -> NotificationResult:
        coupon = await self._load(Coupon, coupon_id)
        return await self._vendor_alert(
            "COUPON_CREATED",
            coupon,
            discount_text=discount_text(coupon),
            expiry_date=coupon.expires_at.strftime("%Y-%m-%d") if coupon.expires_at else None,
            usage_limit=coupon.usage_limit,
        )

    @safe_notify
    async def send_coupon_expiry_warning(self, coupon_id: IdLike, days_until_expiry: Optional[int] = None) -> NotificationResult:
        coupon = await self._load(Coupon, coupon_id)
        if days_until_expiry is None and coupon.expires_at is not None:
            days_until_expiry = days_until(coupon.expires_at)
        return await self._vendor_alert(
            "COUPON_EXPIRED",
            coupon,
            days_until_expiry=days_until_expiry,
            usage_count=coupon.usage_count,
            usage_limit=coupon.usage_limit,
        )

    @safe_notify
    async def send_coupon_usage_threshold(self, coupon_id: IdLike) -> NotificationResult:
        coupon = await self._load(Coupon, coupon_id)
        if not coupon.usage_limit:
            raise NotificationError(f"Coupon {coupon.code} has no usage limit")
        return await self._vendor_alert(
            "COUPON_USAGE_THRESHOLD",
            coupon,
            usage_percentage=round(coupon.usage_percentage),
            usage_count=coupon.usage_count,
            usage_limit=coupon.usage_limit,
            remaining_uses=coupon.usage_limit - coupon.usage_count,
        )

    @safe_notify
    async def send_coupon_applied(self, application: CouponApplication, customer_id: IdLike) -> NotificationResult:
        user_id = await self.customer_user_id(customer_id)
        order_ref = await self.order_reference(application.order_id) if application.order_id else None
        return await self._notify(
            "COUPON_APPLIED",
            user_id,
            {"code": application.code, "discount_amount": application.discount_amount, "order_id": order_ref},
            order_id=application.order_id,
            reference_url=f"/customer/orders/{application.order_id}" if application.order_id else "/cart",
        )

    @safe_notify
    async def send_coupon_failed(self, application: CouponApplication, customer_id: IdLike) -> NotificationResult:
        user_id = await self.customer_user_id(customer_id)
        return await self._notify(
            "COUPON_FAILED",
            user_id,
            {"code": application.code, "reason": application.reason},
            reference_url="/cart",
        )

    @safe_notify
    async def check_expiring_coupons(self) -> NotificationResult:
        """Active vendor coupons expiring within COUPON_EXPIRY_WARNING_DAYS"""
        now = utcnow()
        result = await self.db.execute(
            select(Coupon).where(
                Coupon.is_active.is_(True),
                Coupon.vendor_id.is_not(None),
                Coupon.expires_at.is_not(None),
                Coupon.expires_at >= now,
                Coupon.expires_at <= now + timedelta(days=settings.COUPON_EXPIRY_WARNING_DAYS),
            )
        )
        coupons = list(result.scalars().all())
        user_ids = await self.vendor_user_ids({c.vendor_id for c in coupons})

        drafts = [
            self._draft(
                "COUPON_EXPIRED",
                user_ids[coupon.vendor_id],
                {
                    "code": coupon.code,
                    "days_until_expiry": days_until(coupon.expires_at, now),
                    "usage_count": coupon.usage_count,
                },
                reference_url=COUPONS_URL,
            )
            for coupon in coupons
            if coupon.vendor_id in user_ids
        ]
        return await self._notify_many(drafts, label="coupon expiry warnings")

    @safe_notify
    async def check_usage_thresholds(self) -> NotificationResult:
        """Active vendor coupons at or past the warning percentage but not exhausted"""
        result = await self.db.execute(
            select(Coupon).where(
                Coupon.is_active.is_(True),
                Coupon.vendor_id.is_not(None),
                Coupon.usage_limit.is_not(None),
                Coupon.usage_limit > 0,
            )
        )
        coupons = [
            c for c in result.scalars().all()
            if settings.COUPON_USAGE_WARNING_PERCENTAGE <= c.usage_percentage < 100
        ]
        user_ids = await self.vendor_user_ids({c.vendor_id for c in coupons})

        drafts = [
            self._draft(
                "COUPON_USAGE_THRESHOLD",
                user_ids[coupon.vendor_id],
                {
                    "code": coupon.code,
                    "usage_percentage": round(coupon.usage_percentage),
                    "usage_count": coupon.usage_count,
                    "usage_limit": coupon.usage_limit,
                    "remaining_uses": coupon.usage_limit - coupon.usage_count,
                },
                reference_url=COUPONS_URL,
            )
            for coupon in coupons
            if coupon.vendor_id in user_ids
        ]
        return await self._notify_many(drafts, label="coupon usage alerts")

    @safe_notify
    async def run_coupon_check(self) -> NotificationResult:
        logger.info("Starting coupon check")
        combined = NotificationResult.combine([
            await self.check_expiring_coupons(),
            await self.check_usage_thresholds(),
        ])
        logger.info(f"Coupon check completed, {combined.created} alerts sent")
        return combined

    @safe_notify
    async def handle_coupon_usage_update(self, coupon_id: IdLike, old_usage_count: int, new_usage_count: int) -> NotificationResult:
        """Alert the vendor only when usage crosses the warning percentage"""
        coupon = await self.db.get(Coupon, coerce_uuid(coupon_id))
        if coupon is None or not coupon.is_active or not coupon.usage_limit or coupon.vendor_id is None:
            return NotificationResult.skip("Coupon missing, inactive or unlimited")

        threshold = settings.COUPON_USAGE_WARNING_PERCENTAGE
        before = usage_percentage(old_usage_count, coupon.usage_limit)
        after = usage_percentage(new_usage_count, coupon.usage_limit)
        if before < threshold <= after:
            return await self.send_coupon_usage_threshold(coupon.id)

        return NotificationResult.skip("Usage threshold not crossed")

    async def handle_coupon_application(self, application: CouponApplication, customer_id: IdLike) -> NotificationResult:
        if application.success:
            return await self.send_coupon_applied(application, customer_id)
        return await self.send_coupon_failed(application, customer_id)

"""Wishlist-driven product notifications for customers"""

from decimal import Decimal
from typing import Any, List, Mapping
from sqlalchemy import select, func
import uuid
import logging

from app.core.config import settings
from app.models.product import Product
from app.models.user import Customer
from app.models.wishlist import WishlistItem
from app.utils.helpers import coerce_uuid, to_number
from ..errors import NotificationError
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

WISHLIST_URL = "/wishlist"

def product_page_url(product_id) -> str:
    return f"/products/{product_id}"

def is_significant_price_drop(old_price: Decimal, new_price: Decimal) -> bool:
    """A drop matters when either the percentage or the absolute amount clears its minimum"""
    if old_price <= 0 or new_price >= old_price:
        return False
    amount = old_price - new_price
    percentage = amount / old_price * 100
    return not (
        percentage < Decimal(str(settings.PRICE_DROP_MIN_PERCENTAGE))
        and amount < Decimal(str(settings.PRICE_DROP_MIN_AMOUNT))
    )

class ProductNotifier(BaseNotifier):

    async def _wishlist_user_ids(self, product_id: IdLike) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(Customer.user_id)
            .join(WishlistItem, WishlistItem.customer_id == Customer.id)
            .where(WishlistItem.product_id == coerce_uuid(product_id), Customer.user_id.is_not(None))
            .distinct()
        )
        return list(result.scalars().all())

    async def _wishlist_fan_out(self, template_key: str, product: Product, data: Mapping[str, Any]) -> NotificationResult:
        drafts = [
            self._draft(template_key, user_id, data, reference_url=product_page_url(product.id))
            for user_id in await self._wishlist_user_ids(product.id)
        ]
        return await self._notify_many(drafts, label=f"{template_key} for product {product.id}")

    @safe_notify
    async def send_back_in_stock(self, product_id: IdLike) -> NotificationResult:
        product = await self._load(Product, product_id)
        if not product.is_published or (product.inventory or 0) <= 0:
            return NotificationResult.skip("Product unpublished or out of stock")
        return await self._wishlist_fan_out("PRODUCT_BACK_IN_STOCK", product, {"product_name": product.name})

    @safe_notify
    async def send_price_drop(self, product_id: IdLike, old_price: Any, new_price: Any) -> NotificationResult:
        old, new = to_number(old_price), to_number(new_price)
        if old is None or new is None:
            raise NotificationError(f"Invalid prices for product {product_id}: {old_price} -> {new_price}")
        if not is_significant_price_drop(old, new):
            return NotificationResult.skip("Price drop below notification threshold")

        product = await self._load(Product, product_id)
        if not product.is_published:
            return NotificationResult.skip("Product unpublished")
        return await self._wishlist_fan_out(
            "PRODUCT_PRICE_DROP",
            product,
            {"product_name": product.name, "old_price": old, "new_price": new},
        )

    @safe_notify
    async def send_wishlist_reminder(self, customer_id: IdLike) -> NotificationResult:
        user_id = await self.customer_user_id(customer_id)
        item_count = await self.db.scalar(
            select(func.count(WishlistItem.id)).where(WishlistItem.customer_id == coerce_uuid(customer_id))
        )
        if not item_count:
            return NotificationResult.skip("Wishlist is empty")
        return await self._notify("WISHLIST_REMINDER", user_id, {"item_count": item_count}, reference_url=WISHLIST_URL)

    @safe_notify
    async def run_weekly_wishlist_reminders(self) -> NotificationResult:
        """One reminder per customer with a non-empty wishlist"""
        item_count = func.count(WishlistItem.id).label("item_count")
        result = await self.db.execute(
            select(Customer.user_id, item_count)
            .join(WishlistItem, WishlistItem.customer_id == Customer.id)
            .where(Customer.user_id.is_not(None))
            .group_by(Customer.id, Customer.user_id)
        )
        drafts = [
            self._draft("WISHLIST_REMINDER", row.user_id, {"item_count": row.item_count}, reference_url=WISHLIST_URL)
            for row in result.all()
            if row.item_count > 0
        ]
        return await self._notify_many(drafts, label="weekly wishlist reminders")

    @safe_notify
    async def handle_product_update(
        self,
        product_id: IdLike,
        old: Mapping[str, Any],
        new: Mapping[str, Any],
    ) -> NotificationResult:
        """
        React to a product edit

        Restocking from zero sends back-in-stock alerts and a lower price
        sends price drop alerts; both can fire for the same edit.
        Unpublished products are ignored.
        """
        if not new.get("is_published", True):
            return NotificationResult.skip("Product unpublished")

        results = []
        if (old.get("inventory") or 0) == 0 and (new.get("inventory") or 0) > 0:
            results.append(await self.send_back_in_stock(product_id))

        old_price, new_price = to_number(old.get("price")), to_number(new.get("price"))
        if old_price is not None and new_price is not None and old_price > new_price:
            results.append(await self.send_price_drop(product_id, old_price, new_price))

        if not results:
            return NotificationResult.skip("Nothing to notify")
        return NotificationResult.combine(results)

"""
Inventory alerts for vendors

Single alerts go out when a stock change crosses a threshold; the
check_* sweeps scan published products and alert once per qualifying
product every time they run.
"""

from datetime import timedelta
from typing import Optional
from sqlalchemy import select, func
import logging

from app.core.config import settings
from app.models.order import OrderItem
from app.models.product import Product
from app.utils.helpers import coerce_uuid, utcnow
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

def product_url(product_id) -> str:
    return f"/vendor/products/{product_id}"

class InventoryNotifier(BaseNotifier):

    async def _product_alert(self, template_key: str, product_id: IdLike, **data) -> NotificationResult:
        product = await self._load(Product, product_id)
        user_id = await self.vendor_user_id(product.vendor_id)
        result = await self._notify(
            template_key,
            user_id,
            {"product_name": product.name, **data},
            reference_url=product_url(product.id),
        )
        logger.info(f"{template_key} for product {product_id} ({data or 'no data'})")
        return result

    @safe_notify
    async def send_low_stock_alert(self, product_id: IdLike, current_stock: int) -> NotificationResult:
        return await self._product_alert("LOW_STOCK_ALERT", product_id, current_stock=current_stock)

    @safe_notify
    async def send_out_of_stock_alert(self, product_id: IdLike) -> NotificationResult:
        return await self._product_alert("OUT_OF_STOCK_ALERT", product_id)

    @safe_notify
    async def send_restock_notification(self, product_id: IdLike, new_stock: int) -> NotificationResult:
        return await self._product_alert("INVENTORY_UPDATE", product_id, new_stock=new_stock)

    @safe_notify
    async def send_popular_product_alert(self, product_id: IdLike, order_count: int) -> NotificationResult:
        return await self._product_alert("POPULAR_PRODUCT_ALERT", product_id, order_count=order_count)

    async def _sweep(self, template_key: str, rows, label: str, data_for) -> NotificationResult:
        """One alert per (product, vendor) row; vendors without a user are left out"""
        rows = list(rows)
        if not rows:
            logger.info(f"No {label} products found")
            return NotificationResult.ok()

        user_ids = await self.vendor_user_ids({row.vendor_id for row in rows})
        drafts = [
            self._draft(
                template_key,
                user_ids[row.vendor_id],
                {"product_name": row.name, **data_for(row)},
                reference_url=product_url(row.id),
            )
            for row in rows
            if row.vendor_id in user_ids
        ]
        return await self._notify_many(drafts, label=f"{label} alerts")

    @safe_notify
    async def check_low_stock(self) -> NotificationResult:
        result = await self.db.execute(
            select(Product.id, Product.vendor_id, Product.name, Product.inventory).where(
                Product.is_published.is_(True),
                Product.inventory > settings.OUT_OF_STOCK_THRESHOLD,
                Product.inventory <= settings.LOW_STOCK_THRESHOLD,
            )
        )
        return await self._sweep(
            "LOW_STOCK_ALERT",
            result.all(),
            "low stock",
            lambda row: {"current_stock": row.inventory},
        )

    @safe_notify
    async def check_out_of_stock(self) -> NotificationResult:
        result = await self.db.execute(
            select(Product.id, Product.vendor_id, Product.name).where(
                Product.is_published.is_(True),
                Product.inventory == settings.OUT_OF_STOCK_THRESHOLD,
            )
        )
        return await self._sweep("OUT_OF_STOCK_ALERT", result.all(), "out of stock", lambda row: {})

    @safe_notify
    async def check_popular_products(self, window_hours: int = 24) -> NotificationResult:
        """Products with at least POPULAR_PRODUCT_ORDER_COUNT order items in the window"""
        since = utcnow() - timedelta(hours=window_hours)
        order_count = func.count(OrderItem.id).label("order_count")
        result = await self.db.execute(
            select(Product.id, Product.vendor_id, Product.name, order_count)
            .join(OrderItem, OrderItem.product_id == Product.id)
            .where(Product.is_published.is_(True), OrderItem.created_at >= since)
            .group_by(Product.id, Product.vendor_id, Product.name)
            .having(order_count >= settings.POPULAR_PRODUCT_ORDER_COUNT)
        )
        return await self._sweep(
            "POPULAR_PRODUCT_ALERT",
            result.all(),
            "popular",
            lambda row: {"order_count": row.order_count},
        )

    @safe_notify
    async def run_inventory_check(self) -> NotificationResult:
        logger.info("Starting inventory check")
        results = [
            await self.check_low_stock(),
            await self.check_out_of_stock(),
            await self.check_popular_products(),
        ]
        combined = NotificationResult.combine(results)
        logger.info(f"Inventory check completed, {combined.created} alerts sent")
        return combined

    @safe_notify
    async def handle_inventory_update(self, product_id: IdLike, old_inventory: int, new_inventory: int) -> NotificationResult:
        """
        Alert the vendor when a stock change crosses a threshold

        Only the first matching transition fires: sold out, restocked
        from zero, or dropped into the low stock band. Unpublished
        products never alert.
        """
        product: Optional[Product] = await self.db.get(Product, coerce_uuid(product_id))
        if product is None or not product.is_published:
            return NotificationResult.skip("Product missing or unpublished")

        out = settings.OUT_OF_STOCK_THRESHOLD
        low = settings.LOW_STOCK_THRESHOLD

        if old_inventory > out and new_inventory == out:
            result = await self.send_out_of_stock_alert(product.id)
        elif old_inventory == out and new_inventory > settings.RESTOCK_THRESHOLD:
            result = await self.send_restock_notification(product.id, new_inventory)
        elif old_inventory > low and out < new_inventory <= low:
            result = await self.send_low_stock_alert(product.id, new_inventory)
        else:
            result = NotificationResult.skip("No inventory threshold crossed")

        logger.info(f"Inventory update for product {product_id}: {old_inventory} -> {new_inventory}")
        return result

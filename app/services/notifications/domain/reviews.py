"""Review notifications for vendors and customers"""

from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional
from sqlalchemy import select, func, exists
from sqlalchemy.orm import joinedload
import logging

from app.core.config import settings
from app.models.order import Order, OrderItem, OrderStatus
from app.models.product import Product
from app.models.review import Review
from app.models.seller import Vendor
from app.models.user import Customer
from app.utils.helpers import coerce_uuid, utcnow
from ..errors import NotificationError
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike
from .products import product_page_url

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_LENGTH = 100
RESPONSE_PREVIEW_LENGTH = 150

def rating_stars(rating: Any) -> str:
    """Five-character star bar, e.g. 4 -> "★★★★☆" """
    filled = max(0, min(5, int(rating or 0)))
    return "★" * filled + "☆" * (5 - filled)

def preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."

def vendor_reviews_url(product_id) -> str:
    return f"/vendor/reviews?product={product_id}"

class ReviewNotifier(BaseNotifier):

    @safe_notify
    async def send_new_review(self, review_id: IdLike) -> NotificationResult:
        """Tell the product's vendor about a new review"""
        review = await self._load(
            Review,
            review_id,
            joinedload(Review.product),
            joinedload(Review.customer).joinedload(Customer.user),
        )
        user_id = await self.vendor_user_id(review.product.vendor_id)

        customer = review.customer
        customer_name = customer.user.name if customer is not None and customer.user is not None else None
        comment = f'"{preview(review.comment, COMMENT_PREVIEW_LENGTH)}"' if review.comment else None

        result = await self._notify(
            "NEW_PRODUCT_REVIEW",
            user_id,
            {
                "product_name": review.product.name,
                "customer_name": customer_name,
                "rating": review.rating,
                "rating_stars": rating_stars(review.rating),
                "review_comment": comment,
            },
            reference_url=vendor_reviews_url(review.product_id),
        )
        logger.info(f"New review notification for product {review.product_id}, rating {review.rating}")
        return result

    @safe_notify
    async def send_review_response(self, review_id: IdLike, response_text: str, vendor_id: IdLike) -> NotificationResult:
        """Tell the reviewer that the vendor replied"""
        review = await self._load(Review, review_id, joinedload(Review.product))
        user_id = await self.customer_user_id(review.customer_id)
        vendor: Optional[Vendor] = await self.db.get(Vendor, coerce_uuid(vendor_id))

        return await self._notify(
            "REVIEW_RESPONSE",
            user_id,
            {
                "product_name": review.product.name if review.product is not None else None,
                "vendor_name": vendor.store_name if vendor is not None else None,
                "response_text": preview(response_text, RESPONSE_PREVIEW_LENGTH),
                "rating": review.rating,
            },
            reference_url=f"{product_page_url(review.product_id)}#reviews",
        )

    @safe_notify
    async def send_review_milestone(self, product_id: IdLike, milestone_count: int) -> NotificationResult:
        product = await self._load(Product, product_id)
        user_id = await self.vendor_user_id(product.vendor_id)

        average = await self.db.scalar(select(func.avg(Review.rating)).where(Review.product_id == product.id))
        average = Decimal(str(average or 0)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)

        result = await self._notify(
            "REVIEW_MILESTONE",
            user_id,
            {
                "product_name": product.name,
                "milestone_count": milestone_count,
                "average_rating": str(average),
                "rating_stars": rating_stars(int(average)),
            },
            reference_url=vendor_reviews_url(product.id),
        )
        logger.info(f"Review milestone {milestone_count} reached for product {product.id}")
        return result

    @safe_notify
    async def check_review_milestones(self, product_id: Optional[IdLike] = None) -> NotificationResult:
        """
        Milestone notifications for products whose review count is exactly a milestone

        Limited to one product when product_id is given.
        """
        review_count = func.count(Review.id).label("review_count")
        query = select(Review.product_id, review_count).group_by(Review.product_id)
        if product_id is not None:
            query = query.where(Review.product_id == coerce_uuid(product_id))

        milestones = set(settings.REVIEW_MILESTONE_COUNTS)
        rows = [row for row in (await self.db.execute(query)).all() if row.review_count in milestones]
        if not rows:
            return NotificationResult.ok()

        results = [await self.send_review_milestone(row.product_id, row.review_count) for row in rows]
        combined = NotificationResult.combine(results)
        logger.info(f"Sent {combined.created} review milestone notifications")
        return combined

    @safe_notify
    async def send_review_request_reminders(self) -> NotificationResult:
        """
        Ask customers to review products from orders delivered a while ago

        One reminder per customer and product, skipping products the
        customer already reviewed.
        """
        cutoff = utcnow() - timedelta(days=settings.REVIEW_REMINDER_DAYS_AFTER_DELIVERY)
        already_reviewed = exists().where(
            Review.customer_id == Order.customer_id,
            Review.product_id == OrderItem.product_id,
        )
        result = await self.db.execute(
            select(Customer.user_id, Product.id, Product.name)
            .select_from(Order)
            .join(Customer, Customer.id == Order.customer_id)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(
                Order.status == OrderStatus.DELIVERED,
                Order.updated_at <= cutoff,
                Customer.user_id.is_not(None),
                ~already_reviewed,
            )
            .distinct()
        )
        drafts = [
            self._draft(
                "REVIEW_REQUEST",
                row.user_id,
                {"product_name": row.name},
                reference_url=f"{product_page_url(row.id)}#review-form",
            )
            for row in result.all()
        ]
        return await self._notify_many(drafts, label="review request reminders")

    @safe_notify
    async def handle_new_review(self, review_id: IdLike) -> NotificationResult:
        """Vendor notification, then a milestone check for the reviewed product"""
        result = await self.send_new_review(review_id)
        if not result.success:
            return result

        review: Optional[Review] = await self.db.get(Review, coerce_uuid(review_id))
        milestone = await self.check_review_milestones(review.product_id)
        return NotificationResult.combine([result, milestone])

    @safe_notify
    async def handle_review_event(
        self,
        event: str,
        review_id: Optional[IdLike] = None,
        product_id: Optional[IdLike] = None,
        vendor_id: Optional[IdLike] = None,
        response_text: Optional[str] = None,
        milestone_count: Optional[int] = None,
    ) -> NotificationResult:
        """
        Route a review event to its notification

        Events: "new_review", "review_response" and "milestone_reached".
        """
        logger.info(f"Handling review event {event}")

        if event == "new_review":
            if review_id is None:
                raise NotificationError("Review id is required for new_review")
            return await self.handle_new_review(review_id)

        if event == "review_response":
            if review_id is None or not response_text or vendor_id is None:
                raise NotificationError("Review id, response text and vendor id are required for review_response")
            return await self.send_review_response(review_id, response_text, vendor_id)

        if event == "milestone_reached":
            if product_id is None or not milestone_count:
                raise NotificationError("Product id and milestone count are required for milestone_reached")
            return await self.send_review_milestone(product_id, milestone_count)

        return NotificationResult.failure(f"Unsupported review event: {event}")

    @safe_notify
    async def run_review_notification_checks(self) -> NotificationResult:
        logger.info("Starting review notification checks")
        results = [
            await self.send_review_request_reminders(),
            await self.check_review_milestones(),
        ]
        combined = NotificationResult.combine(results)
        logger.info(f"Review notification checks completed, {combined.created} notifications sent")
        return combined

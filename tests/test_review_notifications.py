from datetime import timedelta

from app.core.config import settings
from app.models import OrderStatus
from app.services.notifications import ReviewNotifier
from app.services.notifications.domain.reviews import rating_stars
from app.utils.helpers import utcnow

from .factories import (
    make_customer,
    make_order,
    make_product,
    make_review,
    make_vendor,
    notifications_for,
)

async def _delivered(db, customer, products, days_ago=10):
    order = await make_order(db, customer, [(p, 1, p.price) for p in products])
    order.status = OrderStatus.DELIVERED
    order.updated_at = utcnow() - timedelta(days=days_ago)
    await db.commit()
    return order

def test_rating_stars():
    assert rating_stars(4) == "★★★★☆"
    assert rating_stars(0) == "☆☆☆☆☆"
    assert rating_stars(9) == "★★★★★"

async def test_new_review_notifies_vendor(db):
    vendor = await make_vendor(db)
    product = await make_product(db, vendor)
    customer = await make_customer(db)
    review = await make_review(db, customer, product, rating=4, comment="x" * 120)

    result = await ReviewNotifier(db).send_new_review(review.id)

    assert result.success and result.created == 1
    [notification] = await notifications_for(db, vendor.user_id)
    assert notification.type == "NEW_PRODUCT_REVIEW"
    assert "4-star review ★★★★☆" in notification.message
    assert f'"{"x" * 100}..."' in notification.message
    assert notification.reference_url == f"/vendor/reviews?product={product.id}"

async def test_review_without_comment_says_so(db):
    vendor = await make_vendor(db)
    product = await make_product(db, vendor)
    review = await make_review(db, await make_customer(db), product, comment=None)

    await ReviewNotifier(db).send_new_review(review.id)

    [notification] = await notifications_for(db, vendor.user_id)
    assert notification.message.endswith("No comment provided")

async def test_vendor_without_user_is_skipped(db):
    vendor = await make_vendor(db, with_user=False)
    product = await make_product(db, vendor)
    review = await make_review(db, await make_customer(db), product)

    result = await ReviewNotifier(db).send_new_review(review.id)

    assert result.success and result.skipped

async def test_review_response_reaches_the_reviewer(db):
    vendor = await make_vendor(db, store_name="Kettle Corner")
    product = await make_product(db, vendor)
    customer = await make_customer(db)
    review = await make_review(db, customer, product, rating=2)

    result = await ReviewNotifier(db).send_review_response(review.id, "Sorry! " * 30, vendor.id)

    assert result.success
    [notification] = await notifications_for(db, customer.user_id)
    assert notification.type == "REVIEW_RESPONSE"
    assert notification.message.startswith('Kettle Corner replied to your review of "Blue Kettle"')
    assert notification.message.endswith("...")
    assert notification.reference_url == f"/products/{product.id}#reviews"

async def test_milestone_reports_average_rating(db, monkeypatch):
    monkeypatch.setattr(settings, "REVIEW_MILESTONE_COUNTS", [3])
    vendor = await make_vendor(db)
    product = await make_product(db, vendor)
    other = await make_product(db, vendor, name="Toaster")
    for rating in (5, 4, 4):
        await make_review(db, await make_customer(db), product, rating=rating)
    await make_review(db, await make_customer(db), other)

    result = await ReviewNotifier(db).check_review_milestones()

    assert result.success and result.created == 1
    [notification] = await notifications_for(db, vendor.user_id)
    assert notification.title == "Review Milestone Reached!"
    assert "now has 3 reviews with an average rating of 4.3 ★★★★☆" in notification.message

async def test_new_review_checks_its_own_product_milestone(db, monkeypatch):
    monkeypatch.setattr(settings, "REVIEW_MILESTONE_COUNTS", [1])
    vendor = await make_vendor(db)
    product = await make_product(db, vendor)
    review = await make_review(db, await make_customer(db), product)

    result = await ReviewNotifier(db).handle_review_event("new_review", review_id=review.id)

    assert result.success and result.created == 2
    types = [n.type for n in await notifications_for(db, vendor.user_id)]
    assert sorted(types) == ["NEW_PRODUCT_REVIEW", "REVIEW_MILESTONE"]

async def test_review_requests_skip_reviewed_and_recent_orders(db):
    vendor = await make_vendor(db)
    kettle = await make_product(db, vendor)
    toaster = await make_product(db, vendor, name="Toaster")
    customer = await make_customer(db)
    await _delivered(db, customer, [kettle, toaster])
    await _delivered(db, customer, [kettle])
    await make_review(db, customer, toaster)
    recent = await make_customer(db)
    await _delivered(db, recent, [kettle], days_ago=2)

    result = await ReviewNotifier(db).send_review_request_reminders()

    assert result.success and result.created == 1
    [notification] = await notifications_for(db, customer.user_id)
    assert notification.title == "How was your purchase?"
    assert '"Blue Kettle"' in notification.message
    assert notification.reference_url == f"/products/{kettle.id}#review-form"
    assert await notifications_for(db, recent.user_id) == []

async def test_review_checks_combine_both_sweeps(db, monkeypatch):
    monkeypatch.setattr(settings, "REVIEW_MILESTONE_COUNTS", [1])
    vendor = await make_vendor(db)
    kettle = await make_product(db, vendor)
    toaster = await make_product(db, vendor, name="Toaster")
    customer = await make_customer(db)
    await _delivered(db, customer, [kettle])
    await make_review(db, await make_customer(db), toaster)

    result = await ReviewNotifier(db).run_review_notification_checks()

    assert result.success
    assert result.created == 2

async def test_unknown_or_incomplete_review_events_fail(db):
    notifier = ReviewNotifier(db)

    unknown = await notifier.handle_review_event("review_deleted")
    incomplete = await notifier.handle_review_event("review_response", review_id="abc")

    assert not unknown.success
    assert not incomplete.success
    assert "required" in incomplete.error

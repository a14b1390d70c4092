from datetime import datetime, timezone
from decimal import Decimal

from app.models import PayoutStatus, RefundStatus, VendorPayout
from app.services.notifications import AdminNotifier, AgentNotifier, ProductNotifier, RefundNotifier

from .factories import (
    make_admin,
    make_agent,
    make_customer,
    make_order,
    make_product,
    make_refund,
    make_vendor,
    make_wishlist_item,
    notifications_for,
    order_items,
)

async def _refund_setup(db, customer_has_user=True, agent_has_user=True):
    customer = await make_customer(db, with_user=customer_has_user, address=("12 Marina Road", "Lagos"))
    vendor = await make_vendor(db)
    product = await make_product(db, vendor, name="Steam Iron")
    agent = await make_agent(db, with_user=agent_has_user)
    order = await make_order(db, customer, [(product, 1, Decimal("2500"))])
    [item] = await order_items(db, order)
    refund = await make_refund(db, order, customer, item=item, agent=agent)
    return customer, vendor, agent, order, refund

async def test_refund_requested_notifies_customer_and_vendor(db):
    customer, vendor, _, order, refund = await _refund_setup(db)

    result = await RefundNotifier(db).notify_refund_status_change(refund.id, RefundStatus.REQUESTED)

    assert result.success and result.created == 2
    [submitted] = await notifications_for(db, customer.user_id)
    [action] = await notifications_for(db, vendor.user_id)
    assert submitted.return_id == refund.id
    assert submitted.reference_url == "/customer/refunds"
    assert 'refund was requested for "Steam Iron"' in action.message
    assert "Reason: Arrived damaged" in action.message

async def test_refund_processing_uses_status_templates(db):
    customer, _, _, _, refund = await _refund_setup(db)
    notifier = RefundNotifier(db)

    await notifier.send_refund_processing_update(refund.id, RefundStatus.COMPLETED)
    await notifier.send_refund_processing_update(refund.id, "ON_REVIEW")

    titles = [n.title for n in await notifications_for(db, customer.user_id)]
    messages = [n.message for n in await notifications_for(db, customer.user_id)]
    assert "Refund Processed" in titles
    assert any(message.endswith("is now on_review.") for message in messages)

async def test_pickup_scheduled_notifies_customer_and_agent(db):
    customer, _, agent, _, refund = await _refund_setup(db)

    result = await RefundNotifier(db).send_refund_pickup_scheduled(refund.id)

    assert result.success and result.created == 2
    [customer_note] = await notifications_for(db, customer.user_id)
    [agent_note] = await notifications_for(db, agent.user_id)
    assert "Agent: Tunde" in customer_note.message
    assert "Location: 12 Marina Road, Lagos" in agent_note.message
    assert agent_note.reference_url == f"/agent/returns/{refund.id}"

async def test_pickup_scheduled_succeeds_when_one_side_is_unreachable(db):
    _, _, agent, _, refund = await _refund_setup(db, customer_has_user=False)

    result = await RefundNotifier(db).send_refund_pickup_scheduled(refund.id)

    assert result.success
    assert len(await notifications_for(db, agent.user_id)) == 1

async def test_pickup_assignment_without_address(db):
    customer = await make_customer(db)
    agent = await make_agent(db)
    order = await make_order(db, customer, total_amount=Decimal("100"), agent=agent, pickup_code="PK-77")

    result = await AgentNotifier(db).handle_agent_event("pickup_assigned", order_id=order.id)

    assert result.success
    [notification] = await notifications_for(db, agent.user_id)
    assert "Pickup code: PK-77. Location: Address not available" in notification.message

async def test_pickup_reminder_formats_date(db):
    _, _, agent, _, refund = await _refund_setup(db)
    refund.pickup_date = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)
    await db.commit()

    await AgentNotifier(db).send_refund_pickup_reminder(refund.id)

    [notification] = await notifications_for(db, agent.user_id)
    assert "scheduled for 2026-03-14." in notification.message

async def test_route_optimization_reaches_active_agents_in_city(db):
    lagos = await make_agent(db, city="Lagos", name="Ada")
    idle = await make_agent(db, city="Lagos", name="Bayo", is_active=False)
    abuja = await make_agent(db, city="Abuja", name="Chi")
    customer = await make_customer(db)
    orders = [await make_order(db, customer, total_amount=Decimal("10")) for _ in range(3)]

    result = await AgentNotifier(db).send_route_optimization("Lagos", [o.id for o in orders])

    assert result.success and result.created == 1
    [notification] = await notifications_for(db, lagos.user_id)
    assert notification.message.startswith("3 new pickup(s) available in Lagos.")
    assert await notifications_for(db, idle.user_id) == []
    assert await notifications_for(db, abuja.user_id) == []

async def test_agent_event_requires_ids(db):
    result = await AgentNotifier(db).handle_agent_event("pickup_assigned")

    assert not result.success

async def test_high_value_order_alerts_active_admins(db):
    admin = await make_admin(db)
    retired = await make_admin(db, is_active=False)
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("150000"))

    result = await AdminNotifier(db).send_high_value_order_alert(order.id)

    assert result.success and result.created == 1
    [notification] = await notifications_for(db, admin.id)
    assert order.short_id in notification.message
    assert await notifications_for(db, retired.id) == []

async def test_orders_below_threshold_are_skipped(db):
    await make_admin(db)
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("99999"))

    default = await AdminNotifier(db).send_high_value_order_alert(order.id)
    lowered = await AdminNotifier(db).handle_admin_event("high_value_order", order.id, threshold=50000)

    assert default.skipped
    assert lowered.created == 1

async def test_vendor_application_and_payout_request(db):
    admin = await make_admin(db)
    applicant = await make_vendor(db, store_name="Fresh Farm", is_approved=False)
    approved = await make_vendor(db, store_name="Old Hands")
    payout = VendorPayout(vendor_id=approved.id, amount=Decimal("12000"), status=PayoutStatus.PENDING)
    paid = VendorPayout(vendor_id=approved.id, amount=Decimal("500"), status=PayoutStatus.COMPLETED)
    db.add_all([payout, paid])
    await db.commit()
    notifier = AdminNotifier(db)

    assert (await notifier.send_new_vendor_application(applicant.id)).created == 1
    assert (await notifier.send_new_vendor_application(approved.id)).skipped
    assert (await notifier.send_payout_request(payout.id)).created == 1
    assert (await notifier.send_payout_request(paid.id)).skipped

    messages = [n.message for n in await notifications_for(db, admin.id)]
    assert any('store "Fresh Farm"' in m for m in messages)
    assert any("requested a payout of" in m and "12,000" in m for m in messages)

async def test_product_update_fans_out_to_wishlists(db):
    vendor = await make_vendor(db)
    product = await make_product(db, vendor, name="Rice Cooker", inventory=4, price=Decimal("20000"))
    fans = [await make_customer(db) for _ in range(2)]
    for fan in fans:
        await make_wishlist_item(db, fan, product)

    result = await ProductNotifier(db).handle_product_update(
        product.id,
        {"inventory": 0, "price": "25000", "is_published": True},
        {"inventory": 4, "price": "20000", "is_published": True},
    )

    assert result.success and result.created == 4
    titles = sorted(n.title for n in await notifications_for(db, fans[0].user_id))
    assert titles == ["Price Drop Alert!", "Product Back in Stock!"]

async def test_small_price_drops_are_skipped(db):
    vendor = await make_vendor(db)
    product = await make_product(db, vendor, price=Decimal("5000"))

    result = await ProductNotifier(db).send_price_drop(product.id, "5000", "4900")

    assert result.skipped

async def test_weekly_wishlist_reminders(db):
    vendor = await make_vendor(db)
    products = [await make_product(db, vendor, name=f"Item {i}") for i in range(3)]
    keen = await make_customer(db)
    idle = await make_customer(db)
    for product in products:
        await make_wishlist_item(db, keen, product)

    result = await ProductNotifier(db).run_weekly_wishlist_reminders()

    assert result.created == 1
    [notification] = await notifications_for(db, keen.user_id)
    assert notification.message == "You have 3 item(s) waiting in your wishlist."
    assert await notifications_for(db, idle.user_id) == []

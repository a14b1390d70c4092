from decimal import Decimal

from app.core.config import settings
from app.models import OrderStatus, PaymentStatus
from app.services.notifications import NotificationPreferenceService, OrderNotifier, PaymentNotifier, VendorOrderNotifier

from .factories import (
    make_customer,
    make_order,
    make_product,
    make_vendor,
    notifications_for,
)

async def test_order_confirmation_reaches_customer(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("4000"))

    result = await OrderNotifier(db).send_order_confirmation(order.id)

    assert result.success and result.created == 1
    [notification] = await notifications_for(db, customer.user_id)
    assert notification.title == "Order Confirmed"
    assert f"#{order.short_id} " in notification.message
    assert notification.order_id == order.id
    assert notification.reference_url == f"/customer/orders/{order.id}"

async def test_customer_without_user_is_skipped(db):
    customer = await make_customer(db, with_user=False)
    order = await make_order(db, customer, total_amount=Decimal("100"))

    result = await OrderNotifier(db).send_order_confirmation(order.id)

    assert result.success
    assert result.skipped

async def test_missing_order_is_reported_not_raised(db):
    result = await OrderNotifier(db).send_order_confirmation("7b1f3c4e-6a43-4c0f-9a53-1f1e0f6b2c11")

    assert not result.success
    assert "not found" in result.error

async def test_status_change_picks_status_template(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("100"), pickup_code="PK-9")

    result = await OrderNotifier(db).send_order_status_change(order.id, OrderStatus.READY_FOR_PICKUP)

    assert result.success
    [notification] = await notifications_for(db, customer.user_id)
    assert notification.type == "PICKUP_READY"
    assert "Pickup code: PK-9" in notification.message

async def test_disabled_in_app_preference_suppresses_status_change(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("100"))
    await NotificationPreferenceService(db).set_preference(customer.user_id, "ORDER_STATUS_CHANGE", "IN_APP", False)
    await db.commit()

    result = await OrderNotifier(db).send_order_status_change(order.id, "PROCESSING")

    assert result.success and result.skipped
    assert await notifications_for(db, customer.user_id) == []

async def test_every_party_sees_the_same_order_reference(db):
    customer = await make_customer(db)
    vendor = await make_vendor(db)
    product = await make_product(db, vendor)
    order = await make_order(db, customer, [(product, 1, Decimal("2500"))])

    await OrderNotifier(db).send_order_confirmation(order.id)
    await VendorOrderNotifier(db).send_new_order_notification_to_vendors(order.id)
    await VendorOrderNotifier(db).notify_vendors_order_status_change(order.id, OrderStatus.CANCELLED)
    await PaymentNotifier(db).send_payment_failed(order.id, "Card declined")

    messages = [n.message for n in await notifications_for(db, customer.user_id)]
    messages += [n.message for n in await notifications_for(db, vendor.user_id)]
    assert len(messages) == 4
    assert all(f"#{order.short_id}" in message for message in messages)
    assert not any(str(order.id)[:8] in message for message in messages)

async def test_unknown_status_falls_back_to_confirmation(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("100"))

    await OrderNotifier(db).send_order_status_change(order.id, "ON_HOLD")

    [notification] = await notifications_for(db, customer.user_id)
    assert notification.title == "Order Confirmed"

async def test_unknown_lifecycle_event_fails(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("100"))

    result = await OrderNotifier(db).handle_order_lifecycle(order.id, "teleported")

    assert not result.success

async def test_new_order_fans_out_per_vendor(db):
    customer = await make_customer(db)
    kettles = await make_vendor(db, store_name="Kettles")
    mugs = await make_vendor(db, store_name="Mugs")
    orphan = await make_vendor(db, with_user=False, store_name="Orphan")
    kettle = await make_product(db, kettles, name="Kettle")
    mug = await make_product(db, mugs, name="Mug")
    spoon = await make_product(db, orphan, name="Spoon")
    order = await make_order(db, customer, [
        (kettle, 2, Decimal("1000")),
        (mug, 1, Decimal("500")),
        (spoon, 1, Decimal("50")),
    ])

    result = await VendorOrderNotifier(db).send_new_order_notification_to_vendors(order.id)

    assert result.success and result.created == 2
    [kettle_note] = await notifications_for(db, kettles.user_id)
    [mug_note] = await notifications_for(db, mugs.user_id)
    assert f"1 item(s) worth {settings.CURRENCY_SYMBOL}2,000" in kettle_note.message
    assert f"1 item(s) worth {settings.CURRENCY_SYMBOL}500" in mug_note.message
    assert kettle_note.reference_url == f"/vendor/orders/{order.id}"

async def test_payment_completed_notifies_customer_and_vendors(db):
    customer = await make_customer(db)
    vendor = await make_vendor(db)
    product = await make_product(db, vendor)
    order = await make_order(db, customer, [(product, 3, Decimal("1500"))])

    result = await PaymentNotifier(db).notify_payment_status_change(order.id, PaymentStatus.COMPLETED)

    assert result.success
    assert result.created == 2
    [payment] = await notifications_for(db, customer.user_id)
    [received] = await notifications_for(db, vendor.user_id)
    assert payment.title == "Payment Successful"
    assert f"{settings.CURRENCY_SYMBOL}4,500" in received.message

async def test_payment_failed_carries_reason(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("100"))

    result = await PaymentNotifier(db).notify_payment_status_change(order.id, "FAILED", reason="Card declined")

    assert result.success
    [notification] = await notifications_for(db, customer.user_id)
    assert notification.type == "PAYMENT_FAILED"
    assert "Card declined" in notification.message

async def test_payment_received_without_items_fails(db):
    customer = await make_customer(db)
    order = await make_order(db, customer, total_amount=Decimal("100"))

    result = await PaymentNotifier(db).send_payment_received_to_vendors(order.id)

    assert not result.success
    assert result.error == "No order items found"

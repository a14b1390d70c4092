import json

import pytest

from app.core.config import settings
from app.models.notification import NotificationChannel
from app.services.notifications import (
    NotificationDispatcher,
    NotificationPreferenceService,
    NotificationStore,
    WebPushService,
)
from app.services.notifications.errors import DeliveryError
from app.services.notifications.push import build_payload, normalize_endpoint, payload_for_notification

from .factories import make_user

class FakeSender:
    """Records deliveries; endpoints listed in `failures` raise with that status"""

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.sent = []

    async def send(self, subscription_info, data):
        endpoint = subscription_info["endpoint"]
        if endpoint in self.failures:
            raise DeliveryError(f"push service said {self.failures[endpoint]}", self.failures[endpoint])
        self.sent.append((endpoint, json.loads(data)))

@pytest.fixture
def vapid(monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "BPublicKeyForTests")
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", "private-key-for-tests")

async def _subscribe(db, user, endpoint):
    return await WebPushService(db).save_subscription(user.id, endpoint, "p256dh-key", "auth-key", "pytest")

async def test_missing_vapid_keys_fail_without_sending(db, monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", None)
    user = await make_user(db)
    sender = FakeSender()
    await _subscribe(db, user, "https://push.example.com/a")

    result = await WebPushService(db, sender=sender).send(user.id, build_payload("Hi", "There"))

    assert not result.success
    assert result.error == "VAPID keys not configured"
    assert sender.sent == []

async def test_no_subscriptions_is_success(db, vapid):
    user = await make_user(db)

    result = await WebPushService(db, sender=FakeSender()).send(user.id, build_payload("Hi", "There"))

    assert result.success
    assert result.sent == 0

async def test_legacy_fcm_endpoints_are_rewritten(db, vapid):
    user = await make_user(db)
    sender = FakeSender()
    await _subscribe(db, user, "https://fcm.googleapis.com/fcm/send/abc123")

    result = await WebPushService(db, sender=sender).send(user.id, build_payload("Hi", "There"))

    assert result.success and result.sent == 1
    assert sender.sent[0][0] == "https://fcm.googleapis.com/wp/abc123"

def test_other_endpoints_are_untouched():
    assert normalize_endpoint("https://updates.push.services.mozilla.com/wpush/v2/x") == (
        "https://updates.push.services.mozilla.com/wpush/v2/x"
    )

async def test_gone_endpoints_are_deactivated_and_transient_ones_kept(db, vapid):
    user = await make_user(db)
    ok = await _subscribe(db, user, "https://push.example.com/ok")
    gone = await _subscribe(db, user, "https://push.example.com/gone")
    flaky = await _subscribe(db, user, "https://push.example.com/flaky")
    sender = FakeSender({"https://push.example.com/gone": 410, "https://push.example.com/flaky": 503})

    result = await WebPushService(db, sender=sender).send(user.id, build_payload("Hi", "There"))

    assert result.success
    assert result.sent == 1
    assert len(result.errors) == 2
    assert ok.is_active and flaky.is_active
    assert gone.is_active is False
    active = await WebPushService(db).list_subscriptions(user.id)
    assert {s.endpoint for s in active} == {ok.endpoint, flaky.endpoint}

async def test_deactivated_subscriptions_are_kept_and_only_delivered_ones_touched(db, vapid):
    from app.core.celery_app import celery_app

    user = await make_user(db)
    ok = await _subscribe(db, user, "https://push.example.com/ok")
    gone = await _subscribe(db, user, "https://push.example.com/gone")
    flaky = await _subscribe(db, user, "https://push.example.com/flaky")
    for subscription in (ok, gone, flaky):
        subscription.last_used_at = None
    await db.flush()
    sender = FakeSender({"https://push.example.com/gone": 404, "https://push.example.com/flaky": 502})

    await WebPushService(db, sender=sender).send(user.id, build_payload("Hi", "There"))

    assert ok.last_used_at is not None
    assert gone.last_used_at is None and flaky.last_used_at is None
    everything = await WebPushService(db).list_subscriptions(user.id, active_only=False)
    assert {s.endpoint: s.is_active for s in everything} == {
        ok.endpoint: True,
        gone.endpoint: False,
        flaky.endpoint: True,
    }
    scheduled = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}
    assert all("subscription" not in task for task in scheduled)

async def test_all_endpoints_failing_is_a_failure(db, vapid):
    user = await make_user(db)
    await _subscribe(db, user, "https://push.example.com/flaky")
    sender = FakeSender({"https://push.example.com/flaky": 500})

    result = await WebPushService(db, sender=sender).send(user.id, build_payload("Hi", "There"))

    assert not result.success
    assert result.error == "Failed to send to 1 subscriptions"

async def test_resubscribing_reactivates(db):
    user = await make_user(db)
    subscription = await _subscribe(db, user, "https://push.example.com/a")
    subscription.is_active = False
    await db.flush()

    again = await _subscribe(db, user, "https://push.example.com/a")

    assert again.id == subscription.id
    assert again.is_active is True
    assert len(await WebPushService(db).list_subscriptions(user.id, active_only=False)) == 1

async def test_save_subscription_requires_keys(db):
    user = await make_user(db)

    with pytest.raises(ValueError):
        await WebPushService(db).save_subscription(user.id, "https://push.example.com/a", "", "auth")

async def test_typed_push_respects_preference(db, vapid):
    user = await make_user(db)
    await _subscribe(db, user, "https://push.example.com/a")
    notification = await NotificationStore(db).create(user.id, "Ready", "Come get it", "PICKUP_READY")
    await NotificationPreferenceService(db).set_preference(user.id, "PICKUP_READY", NotificationChannel.PUSH, False)
    sender = FakeSender()

    result = await WebPushService(db, sender=sender).send_typed(user.id, notification)

    assert result.skipped
    assert sender.sent == []

async def test_payload_for_pickup_ready_requires_interaction(db):
    user = await make_user(db)
    notification = await NotificationStore(db).create(
        user.id, "Ready", "Come get it", "PICKUP_READY", reference_url="/customer/orders/1"
    )

    payload = payload_for_notification(notification)

    assert payload["requireInteraction"] is True
    assert payload["data"]["url"] == "/customer/orders/1"
    assert payload["data"]["notificationId"] == str(notification.id)
    assert payload["tag"] == f"notification-{notification.id}"
    assert [a["action"] for a in payload["actions"]] == ["view_pickup", "dismiss"]

async def test_dispatcher_rejects_email_but_delivers_other_channels(db, vapid):
    user = await make_user(db)
    await _subscribe(db, user, "https://push.example.com/a")
    sender = FakeSender()

    results = await NotificationDispatcher(db, push_sender=sender).dispatch(
        user.id,
        "ORDER_SHIPPED",
        {"order_id": "ORD00099"},
        channels=["IN_APP", "PUSH", "EMAIL"],
    )

    assert results["IN_APP"].success and results["IN_APP"].created == 1
    assert results["PUSH"].success and results["PUSH"].sent == 1
    assert not results["EMAIL"].success
    assert results["EMAIL"].error == "Channel EMAIL is not implemented"
    assert sender.sent[0][1]["title"] == "Order Shipped"

async def test_dispatcher_push_only_builds_payload_from_template(db, vapid):
    user = await make_user(db)
    await _subscribe(db, user, "https://push.example.com/a")
    sender = FakeSender()

    results = await NotificationDispatcher(db, push_sender=sender).dispatch(
        user.id, "PAYMENT_FAILED", {"order_id": "ORD00100", "reason": "Card declined"},
        channels=[NotificationChannel.PUSH], order_id="0f8fad5b-d9cb-469f-a165-70867728950e",
    )

    assert results["PUSH"].sent == 1
    payload = sender.sent[0][1]
    assert payload["data"]["type"] == "PAYMENT_FAILED"
    assert payload["data"]["orderId"] == "0f8fad5b-d9cb-469f-a165-70867728950e"
    assert "Card declined" in payload["body"]

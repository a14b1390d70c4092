import uuid

from app.models import UserRole

from .factories import auth_headers, make_notification, make_user

BASE = "/api/v1/notifications"

SUBSCRIPTION = {
    "subscription": {
        "endpoint": "https://push.example.com/device-1",
        "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
    },
    "user_agent": "pytest",
}

async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

async def test_requests_without_token_are_unauthorized(client):
    response = await client.get(BASE)

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"

async def test_garbage_token_is_unauthorized(client):
    response = await client.get(BASE, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401

async def test_list_is_newest_first_and_paginated(client, db):
    user = await make_user(db)
    for title in ("First", "Second", "Third"):
        await make_notification(db, user, title=title)
    await make_notification(db, await make_user(db), title="Someone else")

    response = await client.get(BASE, params={"limit": 2}, headers=auth_headers(user))

    body = response.json()
    assert response.status_code == 200
    assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "page_count": 2}
    assert len(body["data"]) == 2
    assert all(item["user_id"] == str(user.id) for item in body["data"])

async def test_access_follows_ownership_for_every_role(client, db):
    for role in (UserRole.VENDOR, UserRole.AGENT, UserRole.ADMIN):
        owner = await make_user(db, role)
        notification = await make_notification(db, owner, title=f"For {role.value}")

        listed = await client.get(BASE, headers=auth_headers(owner))
        read = await client.post(f"{BASE}/{notification.id}/read", headers=auth_headers(owner))

        assert [item["title"] for item in listed.json()["data"]] == [f"For {role.value}"]
        assert read.status_code == 200

async def test_list_unread_only(client, db):
    user = await make_user(db)
    await make_notification(db, user, title="Seen", is_read=True)
    await make_notification(db, user, title="New")

    response = await client.get(BASE, params={"unread_only": True}, headers=auth_headers(user))

    assert [item["title"] for item in response.json()["data"]] == ["New"]

async def test_mark_read_twice_reports_already_read(client, db):
    user = await make_user(db)
    notification = await make_notification(db, user)
    url = f"{BASE}/{notification.id}/read"

    first = await client.post(url, headers=auth_headers(user))
    second = await client.post(url, headers=auth_headers(user))

    assert first.status_code == 200
    assert first.json()["already_read"] is False
    assert first.json()["notification"]["is_read"] is True
    assert first.json()["notification"]["read_at"] is not None
    assert second.json()["already_read"] is True

async def test_mark_unread(client, db):
    user = await make_user(db)
    notification = await make_notification(db, user, is_read=True)

    response = await client.delete(f"{BASE}/{notification.id}/read", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["notification"]["is_read"] is False
    assert response.json()["notification"]["read_at"] is None

async def test_other_users_notifications_are_forbidden(client, db):
    owner = await make_user(db)
    intruder = await make_user(db)
    notification = await make_notification(db, owner)

    read = await client.post(f"{BASE}/{notification.id}/read", headers=auth_headers(intruder))
    fetch = await client.get(f"{BASE}/{notification.id}", headers=auth_headers(intruder))
    delete = await client.delete(f"{BASE}/{notification.id}", headers=auth_headers(intruder))

    assert read.status_code == 403
    assert fetch.status_code == 403
    assert delete.status_code == 403
    assert delete.json()["code"] == "FORBIDDEN"

async def test_missing_notification_is_not_found(client, db):
    user = await make_user(db)

    response = await client.post(f"{BASE}/{uuid.uuid4()}/read", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json() == {"error": "Notification not found", "code": "NOT_FOUND"}

async def test_delete_is_idempotent(client, db):
    user = await make_user(db)
    notification = await make_notification(db, user)
    url = f"{BASE}/{notification.id}"

    first = await client.delete(url, headers=auth_headers(user))
    second = await client.delete(url, headers=auth_headers(user))

    assert first.json() == {"success": True, "message": "Notification deleted"}
    assert second.status_code == 200
    assert second.json() == {"success": True, "message": "Notification already deleted"}

async def test_malformed_id_is_a_bad_request(client, db):
    user = await make_user(db)

    response = await client.get(f"{BASE}/not-a-uuid", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"

async def test_mark_all_read_with_filters(client, db):
    user = await make_user(db)
    await make_notification(db, user, type="PICKUP_READY")
    await make_notification(db, user, type="PICKUP_READY")
    await make_notification(db, user, type="COUPON_EXPIRED")
    headers = auth_headers(user)

    filtered = await client.post(f"{BASE}/mark-all-read", json={"type": "PICKUP_READY"}, headers=headers)
    rest = await client.post(f"{BASE}/mark-all-read", headers=headers)
    again = await client.post(f"{BASE}/mark-all-read", headers=headers)

    assert filtered.json() == {"success": True, "updated": 2}
    assert rest.json()["updated"] == 1
    assert again.json()["updated"] == 0

async def test_mark_all_unread_needs_confirmation(client, db):
    user = await make_user(db)
    await make_notification(db, user, is_read=True)
    headers = auth_headers(user)

    missing = await client.request("DELETE", f"{BASE}/mark-all-read", headers=headers)
    wrong = await client.request("DELETE", f"{BASE}/mark-all-read", json={"confirm": "yes"}, headers=headers)
    confirmed = await client.request(
        "DELETE", f"{BASE}/mark-all-read", json={"confirm": "mark-all-unread"}, headers=headers
    )

    assert missing.status_code == 400
    assert missing.json()["code"] == "CONFIRMATION_REQUIRED"
    assert wrong.status_code == 400
    assert confirmed.json() == {"success": True, "updated": 1}

async def test_unread_count_and_filters(client, db):
    user = await make_user(db)
    await make_notification(db, user, type="PICKUP_READY")
    await make_notification(db, user, type="COUPON_EXPIRED")
    await make_notification(db, user, type="COUPON_EXPIRED", is_read=True)
    headers = auth_headers(user)

    total = await client.get(f"{BASE}/unread-count", headers=headers)
    coupons = await client.get(f"{BASE}/unread-count", params={"type": "COUPON_EXPIRED", "max_age": 7}, headers=headers)

    assert total.json()["count"] == 2
    assert coupons.json()["count"] == 1
    assert coupons.json()["filters"] == {"type": "COUPON_EXPIRED", "max_age": 7}

async def test_unread_count_rejects_bad_filters(client, db):
    user = await make_user(db)
    headers = auth_headers(user)

    bad_type = await client.get(f"{BASE}/unread-count", params={"type": "CARRIER_PIGEON"}, headers=headers)
    bad_age = await client.get(f"{BASE}/unread-count", params={"max_age": 0}, headers=headers)

    assert bad_type.status_code == 400
    assert bad_age.status_code == 400

async def test_categories(client, db):
    user = await make_user(db)

    response = await client.get(f"{BASE}/categories", headers=auth_headers(user))

    assert response.status_code == 200
    assert {"value", "label", "description"} <= set(response.json()[0])

async def test_push_subscription_lifecycle(client, db):
    user = await make_user(db)
    headers = auth_headers(user)

    saved = await client.post("/api/v1/push-subscriptions", json=SUBSCRIPTION, headers=headers)
    listed = await client.get("/api/v1/push-subscriptions", headers=headers)
    removed = await client.request(
        "DELETE", "/api/v1/push-subscriptions", json={"endpoint": SUBSCRIPTION["subscription"]["endpoint"]}, headers=headers
    )
    after = await client.get("/api/v1/push-subscriptions", headers=headers)

    assert saved.status_code == 200
    assert saved.json()["is_active"] is True
    assert [s["endpoint"] for s in listed.json()] == ["https://push.example.com/device-1"]
    assert removed.json() == {"success": True, "removed": 1}
    assert after.json() == []

async def test_push_subscription_validation(client, db):
    user = await make_user(db)
    headers = auth_headers(user)
    insecure = {**SUBSCRIPTION, "subscription": {**SUBSCRIPTION["subscription"], "endpoint": "http://push.example.com/x"}}

    bad_endpoint = await client.post("/api/v1/push-subscriptions", json=insecure, headers=headers)
    no_endpoint = await client.request("DELETE", "/api/v1/push-subscriptions", json={}, headers=headers)

    assert bad_endpoint.status_code == 400
    assert bad_endpoint.json()["code"] == "VALIDATION_ERROR"
    assert no_endpoint.status_code == 400
    assert no_endpoint.json()["error"] == "Endpoint is required"

async def test_preference_endpoints(client, db):
    user = await make_user(db)
    headers = auth_headers(user)
    url = "/api/v1/notification-preferences"

    empty = await client.get(url, headers=headers)
    single = await client.post(url, json={"type": "COUPON_EXPIRED", "enabled": False}, headers=headers)
    bulk = await client.put(
        url,
        json={"preferences": [
            {"type": "COUPON_EXPIRED", "channel": "PUSH", "enabled": False},
            {"type": "PICKUP_READY", "enabled": True},
        ]},
        headers=headers,
    )
    listed = await client.get(url, headers=headers)
    reset = await client.delete(url, headers=headers)

    assert empty.json() == []
    assert single.json()["channel"] == "IN_APP"
    assert single.json()["enabled"] is False
    assert len(bulk.json()) == 2
    assert len(listed.json()) == 3
    assert reset.json() == {"success": True, "removed": 3}

async def test_preferences_reject_unknown_types(client, db):
    user = await make_user(db)

    response = await client.post(
        "/api/v1/notification-preferences", json={"type": "NOPE", "enabled": False}, headers=auth_headers(user)
    )

    assert response.status_code == 400

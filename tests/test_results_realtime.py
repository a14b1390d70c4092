import asyncio

from app.core.websocket import ConnectionManager
from app.services.notifications import NotificationResult, NotificationStore, dispatch_detached, safe_notify
from app.services.notifications.errors import RecipientUnresolvedError
from app.services.notifications.realtime import NotificationPublisher, build_event

from .factories import make_user, notifications_for

def test_combine_requires_every_part_by_default():
    combined = NotificationResult.combine([NotificationResult.ok(created=1), NotificationResult.failure("boom")])

    assert not combined.success
    assert combined.created == 1
    assert combined.errors == ("boom",)

def test_combine_any_success():
    combined = NotificationResult.combine(
        [NotificationResult.failure("boom"), NotificationResult.ok(created=1)], any_success=True
    )

    assert combined.success
    assert combined.error is None

def test_empty_combine_and_skips():
    assert NotificationResult.combine([]).success
    skip = NotificationResult.skip("nobody home")
    assert skip.success and skip.skipped
    assert skip.to_dict()["reason"] == "nobody home"

async def test_safe_notify_maps_exceptions():
    @safe_notify
    async def unresolved():
        raise RecipientUnresolvedError("Customer has no linked user")

    @safe_notify
    async def broken():
        raise RuntimeError("database is on fire")

    skipped = await unresolved()
    failed = await broken()

    assert skipped.success and skipped.skipped
    assert not failed.success
    assert failed.error == "database is on fire"

async def test_dispatch_detached_commits_its_own_session(db, session_factory):
    user = await make_user(db)

    async def operation(session):
        await NotificationStore(session).create(user.id, "Detached", "Sent later", "ORDER_STATUS_CHANGE")
        return NotificationResult.ok(created=1)

    result = await dispatch_detached(operation, session_factory=session_factory)

    assert result.success and result.created == 1
    assert [n.title for n in await notifications_for(db, user.id)] == ["Detached"]

async def test_dispatch_detached_never_raises(session_factory):
    async def operation(session):
        raise RuntimeError("lost connection")

    task = dispatch_detached(operation, session_factory=session_factory, name="doomed")

    result = await task
    assert not result.success
    assert result.error == "lost connection"
    assert task.get_name() == "doomed"

async def test_dispatch_detached_wraps_plain_return_values(session_factory):
    async def operation(session):
        return None

    assert (await dispatch_detached(operation, session_factory=session_factory)).success

class FakeSocket:
    def __init__(self):
        self.messages = []

    async def accept(self):
        pass

    async def send_json(self, message):
        self.messages.append(message)

async def test_publisher_delivers_to_local_sockets_without_redis():
    manager = ConnectionManager()
    socket = FakeSocket()
    await manager.connect(socket, "user-1")
    socket.messages.clear()
    publisher = NotificationPublisher(manager)

    publisher.publish(build_event("INSERT", "user-1", {"id": "n1"}))
    publisher.publish(build_event("INSERT", "user-2", {"id": "n2"}))
    await publisher.drain()

    assert socket.messages == [{"type": "notification", "event": "INSERT", "user_id": "user-1", "data": {"id": "n1"}}]

async def test_committed_store_changes_reach_the_owner(db, monkeypatch):
    from app.services.notifications import realtime

    manager = ConnectionManager()
    socket = FakeSocket()
    monkeypatch.setattr(realtime, "notification_publisher", NotificationPublisher(manager))
    user = await make_user(db)
    await manager.connect(socket, str(user.id))
    socket.messages.clear()

    await NotificationStore(db).create(user.id, "Live", "Over the wire", "ORDER_STATUS_CHANGE")
    assert socket.messages == []

    await db.commit()
    await realtime.notification_publisher.drain()
    await asyncio.sleep(0)

    assert [m["event"] for m in socket.messages] == ["INSERT"]
    assert socket.messages[0]["data"]["title"] == "Live"

class HalfDoneNotifier:
    def __init__(self, db):
        self.db = db

    @safe_notify
    async def notify(self, user_id):
        await NotificationStore(self.db).create(user_id, "Half done", "Never delivered", "ORDER_STATUS_CHANGE")
        raise RuntimeError("template exploded")

async def test_failed_notifier_leaves_no_rows_or_events_behind(db):
    from app.services.notifications.realtime import EVENTS_KEY

    user = await make_user(db)
    await NotificationStore(db).create(user.id, "Earlier", "Kept", "ORDER_STATUS_CHANGE")

    result = await HalfDoneNotifier(db).notify(user.id)

    assert not result.success
    assert result.error == "template exploded"
    assert [e["data"]["title"] for e in db.info[EVENTS_KEY]] == ["Earlier"]
    await db.commit()
    assert [n.title for n in await notifications_for(db, user.id)] == ["Earlier"]

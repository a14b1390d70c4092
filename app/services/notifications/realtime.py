"""
Realtime propagation of notification changes

The store records change events on the session; once the session commits
they are published per user. With Redis available the events travel over
pub/sub so API processes can relay them to their websockets; otherwise
they go straight to the local connection manager.
"""

from typing import Any, Dict, List, Optional, Set
from sqlalchemy import event
from sqlalchemy.orm import Session
import redis.asyncio as redis
from anyio import from_thread
import asyncio
import json
import logging

from app.core.config import settings
from app.core.websocket import ConnectionManager, manager

logger = logging.getLogger(__name__)

EVENTS_KEY = "notification_events"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
BULK_UPDATE = "BULK_UPDATE"

def build_event(event_type: str, user_id: Any, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "type": "notification",
        "event": event_type,
        "user_id": str(user_id),
        "data": data or {},
    }

def record_event(session: Any, event_type: str, user_id: Any, data: Optional[Dict[str, Any]] = None) -> None:
    """Queue a change event until the session commits"""
    session.info.setdefault(EVENTS_KEY, []).append(build_event(event_type, user_id, data))

def staged_event_count(session: Any) -> int:
    return len(session.info.get(EVENTS_KEY, ()))

def discard_events_since(session: Any, count: int) -> None:
    """Drop events staged after `count`, used when a savepoint rolls back"""
    events = session.info.get(EVENTS_KEY)
    if events:
        del events[count:]

class NotificationPublisher:
    """Serialize change events and schedule their delivery"""

    def __init__(self, connection_manager: ConnectionManager):
        self._manager = connection_manager
        self.redis_client: Optional[redis.Redis] = None
        self._use_redis = False
        self._pending: Set[asyncio.Task] = set()

    def channel_for(self, user_id: str) -> str:
        return f"{settings.REALTIME_CHANNEL_PREFIX}:{user_id}"

    async def connect(self):
        """Initialize Redis connection"""
        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )
            await self.redis_client.ping()
            self._use_redis = True
            logger.info("Realtime publisher connected to Redis")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis, realtime events stay in-process: {e}")
            self.redis_client = None
            self._use_redis = False

    async def disconnect(self):
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
        self._use_redis = False

    def publish(self, message: Dict[str, Any]) -> None:
        """Schedule delivery of one event to its user"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self.deliver, message)
            except RuntimeError:
                logger.warning(f"No event loop available, dropping realtime event for user {message['user_id']}")
            return

        task = loop.create_task(self.deliver(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def deliver(self, message: Dict[str, Any]) -> None:
        user_id = message["user_id"]
        try:
            if self._use_redis and self.redis_client:
                await self.redis_client.publish(self.channel_for(user_id), json.dumps(message))
            else:
                await self._manager.send_personal_message(user_id, message)
        except Exception as e:
            logger.warning(f"Realtime delivery to user {user_id} failed: {e}")

    async def drain(self) -> None:
        """Wait for scheduled deliveries (used before a worker loop closes)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def relay(self) -> None:
        """Forward Redis events to websockets connected to this process"""
        if not (self._use_redis and self.redis_client):
            return

        pubsub = self.redis_client.pubsub()
        await pubsub.psubscribe(f"{settings.REALTIME_CHANNEL_PREFIX}:*")
        try:
            async for item in pubsub.listen():
                if item.get("type") != "pmessage":
                    continue
                try:
                    message = json.loads(item["data"])
                except (TypeError, ValueError):
                    logger.warning(f"Ignoring malformed realtime message on {item.get('channel')}")
                    continue
                await self._manager.send_personal_message(message["user_id"], message)
        finally:
            await pubsub.aclose()

notification_publisher = NotificationPublisher(manager)

@event.listens_for(Session, "after_commit")
def _publish_committed_events(session: Session) -> None:
    events: List[Dict[str, Any]] = session.info.pop(EVENTS_KEY, [])
    for message in events:
        notification_publisher.publish(message)

@event.listens_for(Session, "after_soft_rollback")
def _discard_rolled_back_events(session: Session, previous_transaction: Any) -> None:
    # Savepoint rollbacks keep events staged by the enclosing transaction
    if previous_transaction.nested:
        return
    session.info.pop(EVENTS_KEY, None)

"""
Client-held notification feed

Keeps a local unread count and newest-first item list in step with the
server. Realtime events are merged optimistically; a periodic poll
re-syncs from the HTTP API in case the realtime channel drops.
"""

from typing import Any, AsyncIterator, Dict, List, Optional
import asyncio
import contextlib
import httpx
import logging

from app.core.config import settings
from .realtime import INSERT, UPDATE, DELETE, BULK_UPDATE

logger = logging.getLogger(__name__)

class NotificationsApiClient:
    """Thin httpx client for the notifications endpoints"""

    def __init__(self, base_url: str, token: str, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self.headers = {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        response = await self.client.request(method, url, headers=self.headers, **kwargs)
        response.raise_for_status()
        return response.json()

    async def list(self, page: int = 1, limit: int = 10, unread_only: bool = False) -> Dict[str, Any]:
        params = {"page": page, "limit": limit, "unread_only": str(unread_only).lower()}
        return await self._request("GET", "/api/v1/notifications", params=params)

    async def unread_count(self) -> int:
        data = await self._request("GET", "/api/v1/notifications/unread-count")
        return int(data.get("count") or 0)

    async def mark_read(self, notification_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/v1/notifications/{notification_id}/read")

    async def mark_all_read(self) -> int:
        data = await self._request("POST", "/api/v1/notifications/mark-all-read", json={})
        return int(data.get("updated") or 0)

    async def aclose(self) -> None:
        await self.client.aclose()

class NotificationFeed:
    """Unread count and item list for one signed-in user"""

    def __init__(self, api: NotificationsApiClient, poll_interval: Optional[float] = None, limit: int = 10):
        self.api = api
        self.poll_interval = poll_interval if poll_interval is not None else settings.REALTIME_POLL_INTERVAL_SECONDS
        self.limit = limit
        self.unread_count = 0
        self.items: List[Dict[str, Any]] = []

    def _index(self, notification_id: Any) -> Optional[int]:
        for position, item in enumerate(self.items):
            if item.get("id") == notification_id:
                return position
        return None

    def _merge(self, event_type: str, data: Dict[str, Any]) -> None:
        if event_type == INSERT:
            if self._index(data.get("id")) is None:
                self.items.insert(0, data)
        elif event_type == UPDATE:
            position = self._index(data.get("id"))
            if position is not None:
                self.items[position] = {**self.items[position], **data}
        elif event_type == DELETE:
            position = self._index(data.get("id"))
            if position is not None:
                del self.items[position]
        elif event_type == BULK_UPDATE and "is_read" in data:
            self.items = [{**item, "is_read": data["is_read"]} for item in self.items]

    async def refresh_count(self) -> None:
        try:
            self.unread_count = await self.api.unread_count()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to refresh unread count: {e}")

    async def handle_event(self, event: Dict[str, Any]) -> None:
        """Merge one realtime event, then re-fetch the unread count"""
        if event.get("type") != "notification":
            return
        self._merge(event.get("event", ""), event.get("data") or {})
        await self.refresh_count()

    async def sync(self) -> None:
        """Authoritative re-sync of list and count"""
        try:
            result = await self.api.list(page=1, limit=self.limit)
            self.items = list(result.get("data") or [])
        except httpx.HTTPError as e:
            logger.warning(f"Failed to sync notifications: {e}")
        await self.refresh_count()

    async def mark_read(self, notification_id: str) -> None:
        """Optimistic mark-read; the next sync corrects a failed call"""
        position = self._index(notification_id)
        if position is not None and not self.items[position].get("is_read"):
            self.items[position] = {**self.items[position], "is_read": True}
            self.unread_count = max(0, self.unread_count - 1)
        try:
            await self.api.mark_read(notification_id)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to mark notification {notification_id} as read: {e}")

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.sync()

    async def run(self, events: AsyncIterator[Dict[str, Any]]) -> None:
        """Consume a realtime stream with polling alongside it"""
        await self.sync()
        poller = asyncio.create_task(self._poll())
        try:
            async for event in events:
                await self.handle_event(event)
        finally:
            poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poller

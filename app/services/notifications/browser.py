"""
Browser push subscription flow

Client-side half of Web Push: permission, service worker registration
and subscribe/unsubscribe. Browser quirks live in strategy classes picked
by feature probing, so adding a browser means adding a strategy.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Type
import asyncio
import base64
import enum
import httpx
import logging

logger = logging.getLogger(__name__)

class PermissionState(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"

@dataclass(frozen=True)
class BrowserCapabilities:
    """Feature detection snapshot of the running browser"""

    has_service_worker: bool = False
    has_push_manager: bool = False
    has_notification: bool = False
    has_brave_api: bool = False
    is_chromium: bool = False
    is_edge: bool = False
    is_safari: bool = False
    is_firefox: bool = False
    user_agent: str = ""

    @property
    def supports_push(self) -> bool:
        return self.has_service_worker and self.has_push_manager and self.has_notification

@dataclass(frozen=True)
class BrowserSubscription:
    """Push subscription as handed out by the browser's push manager"""

    endpoint: str
    p256dh: str
    auth: str

    def to_json(self) -> Dict[str, Any]:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}

class BrowserError(Exception):
    """DOMException raised by a browser API; `name` is the DOM error name"""

    def __init__(self, name: str, message: str = ""):
        super().__init__(f"{name}: {message}" if message else name)
        self.name = name

class BrowserEnvironment(Protocol):
    capabilities: BrowserCapabilities

    def permission(self) -> str: ...

    async def request_permission(self) -> str: ...

    async def register_service_worker(self, script_url: str, scope: str) -> None: ...

    async def get_subscription(self) -> Optional[BrowserSubscription]: ...

    async def subscribe(self, application_server_key: bytes) -> BrowserSubscription: ...

    async def unsubscribe(self) -> bool: ...

class SubscriptionBackend(Protocol):
    async def save(self, subscription: BrowserSubscription, user_agent: Optional[str] = None) -> None: ...

    async def remove(self, endpoint: str) -> None: ...

class HttpSubscriptionBackend:
    """Persists subscriptions through the push-subscriptions API"""

    def __init__(self, base_url: str, token: str, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self.headers = {"Authorization": f"Bearer {token}"}

    async def save(self, subscription: BrowserSubscription, user_agent: Optional[str] = None) -> None:
        response = await self.client.post(
            "/api/v1/push-subscriptions",
            json={"subscription": subscription.to_json(), "user_agent": user_agent},
            headers=self.headers,
        )
        response.raise_for_status()

    async def remove(self, endpoint: str) -> None:
        response = await self.client.request(
            "DELETE",
            "/api/v1/push-subscriptions",
            json={"endpoint": endpoint},
            headers=self.headers,
        )
        response.raise_for_status()

    async def aclose(self) -> None:
        await self.client.aclose()

class BrowserStrategy:
    """Default behaviour, shared by Chromium-based browsers"""

    name = "chromium"
    requires_user_gesture = False
    permission_delay = 0.0
    subscribe_retries = 0
    retry_backoff = 0.0

    @classmethod
    def matches(cls, capabilities: BrowserCapabilities) -> bool:
        return capabilities.is_chromium

    def is_recoverable(self, error: BrowserError) -> bool:
        return False

class ChromiumStrategy(BrowserStrategy):
    pass

class FirefoxStrategy(BrowserStrategy):
    name = "firefox"

    @classmethod
    def matches(cls, capabilities: BrowserCapabilities) -> bool:
        return capabilities.is_firefox

class BraveStrategy(BrowserStrategy):
    """
    Brave reports itself as Chrome; navigator.brave gives it away.
    Its push service depends on optional Google services, so the
    subscribe call can abort and is retried.
    """

    name = "brave"
    permission_delay = 2.0
    subscribe_retries = 2
    retry_backoff = 2.0

    @classmethod
    def matches(cls, capabilities: BrowserCapabilities) -> bool:
        return capabilities.has_brave_api

    def is_recoverable(self, error: BrowserError) -> bool:
        return error.name == "AbortError"

class EdgeStrategy(BrowserStrategy):
    name = "edge"
    requires_user_gesture = True

    @classmethod
    def matches(cls, capabilities: BrowserCapabilities) -> bool:
        return capabilities.is_edge

class SafariStrategy(BrowserStrategy):
    name = "safari"
    requires_user_gesture = True

    @classmethod
    def matches(cls, capabilities: BrowserCapabilities) -> bool:
        return capabilities.is_safari and not capabilities.is_chromium

# Order matters: Brave and Edge also look like Chromium
STRATEGIES: List[Type[BrowserStrategy]] = [
    BraveStrategy,
    EdgeStrategy,
    FirefoxStrategy,
    SafariStrategy,
    ChromiumStrategy,
]

def detect_strategy(capabilities: BrowserCapabilities) -> BrowserStrategy:
    for strategy_class in STRATEGIES:
        if strategy_class.matches(capabilities):
            return strategy_class()
    return ChromiumStrategy()

def url_base64_to_bytes(value: str) -> bytes:
    """Decode a URL-safe base64 VAPID key"""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)

class PushSubscriptionClient:
    """Subscribe/unsubscribe flow for one browser"""

    SERVICE_WORKER_URL = "/sw.js"
    SERVICE_WORKER_SCOPE = "/"

    def __init__(
        self,
        environment: BrowserEnvironment,
        backend: SubscriptionBackend,
        vapid_public_key: Optional[str],
        strategy: Optional[BrowserStrategy] = None,
    ):
        self.environment = environment
        self.backend = backend
        self.vapid_public_key = vapid_public_key
        self.strategy = strategy or detect_strategy(environment.capabilities)
        self._registered = False

    @property
    def is_supported(self) -> bool:
        return self.environment.capabilities.supports_push

    def permission_status(self) -> str:
        if not self.is_supported:
            return PermissionState.DENIED.value
        return self.environment.permission()

    async def request_permission(self, user_gesture: bool = False) -> str:
        """
        Ask for notification permission

        Browsers that only prompt from a user gesture get "default" back
        until called from one.
        """
        if not self.is_supported:
            logger.warning("Push notifications not supported")
            return PermissionState.DENIED.value

        current = self.environment.permission()
        if current != PermissionState.DEFAULT.value:
            return current

        if self.strategy.requires_user_gesture and not user_gesture:
            logger.info(f"{self.strategy.name} detected, deferring permission request to user interaction")
            return PermissionState.DEFAULT.value

        if self.strategy.permission_delay:
            await asyncio.sleep(self.strategy.permission_delay)

        try:
            return await self.environment.request_permission()
        except BrowserError as e:
            logger.error(f"Permission request failed: {e}")
            return PermissionState.DENIED.value

    async def _register_service_worker(self) -> bool:
        if self._registered:
            return True
        try:
            await self.environment.register_service_worker(self.SERVICE_WORKER_URL, self.SERVICE_WORKER_SCOPE)
        except BrowserError as e:
            logger.error(f"Service worker registration failed: {e}")
            return False
        self._registered = True
        return True

    async def _subscribe_with_retries(self) -> Optional[BrowserSubscription]:
        try:
            key = url_base64_to_bytes(self.vapid_public_key)
        except ValueError as e:
            logger.error(f"VAPID public key is not valid base64url: {e}")
            return None
        attempts = self.strategy.subscribe_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return await self.environment.subscribe(key)
            except BrowserError as e:
                if self.strategy.is_recoverable(e) and attempt < attempts:
                    logger.warning(f"{self.strategy.name} subscribe attempt {attempt} aborted, retrying")
                    await asyncio.sleep(self.strategy.retry_backoff)
                    continue
                logger.error(f"Push subscribe failed on {self.strategy.name}: {e}")
                return None
            except Exception as e:
                logger.error(f"Unexpected push subscribe error on {self.strategy.name}: {e}")
                return None
        return None

    async def subscribe(self, user_id: str, user_gesture: bool = False) -> Optional[BrowserSubscription]:
        """Returns the saved subscription, or None on any failure"""
        if not self.vapid_public_key:
            logger.error("VAPID public key not configured")
            return None

        permission = await self.request_permission(user_gesture=user_gesture)
        if permission != PermissionState.GRANTED.value:
            logger.info(f"Push permission {permission} on {self.strategy.name}")
            return None

        if not await self._register_service_worker():
            return None

        subscription = await self._subscribe_with_retries()
        if subscription is None:
            return None

        try:
            await self.backend.save(subscription, self.environment.capabilities.user_agent or None)
        except httpx.HTTPError as e:
            logger.error(f"Failed to save push subscription for user {user_id}: {e}")
            return None

        logger.info(f"Push subscription created for user {user_id}")
        return subscription

    async def unsubscribe(self, user_id: str) -> bool:
        try:
            subscription = await self.environment.get_subscription()
            if subscription is None:
                return True

            if not await self.environment.unsubscribe():
                return False

            await self.backend.remove(subscription.endpoint)
        except (BrowserError, httpx.HTTPError) as e:
            logger.error(f"Failed to unsubscribe user {user_id}: {e}")
            return False

        logger.info(f"Push subscription removed for user {user_id}")
        return True

    async def current_subscription(self) -> Optional[BrowserSubscription]:
        try:
            return await self.environment.get_subscription()
        except BrowserError as e:
            logger.error(f"Failed to read push subscription: {e}")
            return None

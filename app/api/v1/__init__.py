"""API v1 routes aggregation"""

from fastapi import APIRouter

from .notifications.router import router as notifications_router
from .notifications.push import router as push_subscriptions_router
from .notifications.preferences import router as preferences_router
from .websocket_routes import router as websocket_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(push_subscriptions_router, prefix="/push-subscriptions", tags=["Push Subscriptions"])
api_router.include_router(preferences_router, prefix="/notification-preferences", tags=["Notification Preferences"])
api_router.include_router(websocket_router, tags=["Realtime"])

# Export router
router = api_router

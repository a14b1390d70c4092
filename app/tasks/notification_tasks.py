"""Notification Celery tasks: push delivery and periodic sweeps"""

from celery import Task
from celery.utils.log import get_task_logger
from typing import Any, Awaitable, Callable, Dict
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import get_db_context, engine
from app.services.notifications import (
    CouponNotifier,
    InventoryNotifier,
    NotificationStore,
    ProductNotifier,
    ReviewNotifier,
    StoreError,
    WebPushService,
    notification_publisher,
)

logger = get_task_logger(__name__)

class TransientPushFailure(Exception):
    """Every subscription of a user failed for a retryable reason"""

class NotificationTask(Task):
    """Base task for notification work"""

    autoretry_for = (TransientPushFailure, StoreError)
    retry_kwargs = {"max_retries": 3}
    retry_backoff = True

async def _in_session(operation: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    await notification_publisher.connect()
    try:
        async with get_db_context() as db:
            result = await operation(db)
        await notification_publisher.drain()
        return result
    finally:
        await notification_publisher.disconnect()
        # pooled connections are bound to this loop
        await engine.dispose()

def run_in_worker(operation: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    """Run an async operation with its own session on a fresh event loop"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_in_session(operation))
    finally:
        loop.close()

@celery_app.task(base=NotificationTask, name="app.tasks.notification_tasks.send_push_notification")
def send_push_notification(user_id: str, notification_id: str) -> Dict[str, Any]:
    """Push a stored notification to every active subscription of its user"""

    async def _send(db: AsyncSession):
        notification = await NotificationStore(db).get(notification_id)
        return await WebPushService(db).send_typed(user_id, notification)

    result = run_in_worker(_send)
    if not result.success and settings.push_configured:
        logger.warning(f"Push of notification {notification_id} to user {user_id} failed: {result.error}")
        raise TransientPushFailure(result.error)
    return result.to_dict()

@celery_app.task(base=NotificationTask, name="app.tasks.notification_tasks.run_inventory_check")
def run_inventory_check() -> Dict[str, Any]:
    """Hourly low stock, out of stock and popular product sweep"""
    result = run_in_worker(lambda db: InventoryNotifier(db).run_inventory_check())
    logger.info(f"Inventory check finished: {result.to_dict()}")
    return result.to_dict()

@celery_app.task(base=NotificationTask, name="app.tasks.notification_tasks.run_coupon_check")
def run_coupon_check() -> Dict[str, Any]:
    """Coupon expiry and usage threshold sweep"""
    result = run_in_worker(lambda db: CouponNotifier(db).run_coupon_check())
    logger.info(f"Coupon check finished: {result.to_dict()}")
    return result.to_dict()

@celery_app.task(base=NotificationTask, name="app.tasks.notification_tasks.run_wishlist_reminders")
def run_wishlist_reminders() -> Dict[str, Any]:
    result = run_in_worker(lambda db: ProductNotifier(db).run_weekly_wishlist_reminders())
    logger.info(f"Wishlist reminders finished: {result.to_dict()}")
    return result.to_dict()


@celery_app.task(base=NotificationTask, name="app.tasks.notification_tasks.run_review_checks")
def run_review_checks() -> Dict[str, Any]:
    """Daily review request reminders and review milestone sweep"""
    result = run_in_worker(lambda db: ReviewNotifier(db).run_review_notification_checks())
    logger.info(f"Review checks finished: {result.to_dict()}")
    return result.to_dict()

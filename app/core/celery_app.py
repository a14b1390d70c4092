"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "notifications",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.notification_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Task routing
    task_routes={
        "app.tasks.notification_tasks.send_push_notification": {"queue": "push"},
        "app.tasks.notification_tasks.run_*": {"queue": "sweeps"},
    },

    # Retry configuration
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    # Result backend configuration
    result_expires=3600,  # 1 hour
)

# Define queues
celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("push", Exchange("push"), routing_key="push"),
    Queue("sweeps", Exchange("sweeps"), routing_key="sweeps"),
)
celery_app.conf.task_default_queue = "default"

# Beat schedule for periodic sweeps
celery_app.conf.beat_schedule = {
    "inventory-check": {
        "task": "app.tasks.notification_tasks.run_inventory_check",
        "schedule": 60 * 60,  # Every hour
    },
    "coupon-check": {
        "task": "app.tasks.notification_tasks.run_coupon_check",
        "schedule": 60 * 60 * 6,  # Every 6 hours
    },
    "weekly-wishlist-reminders": {
        "task": "app.tasks.notification_tasks.run_wishlist_reminders",
        "schedule": crontab(hour=10, minute=0, day_of_week="monday"),
    },
    "daily-review-checks": {
        "task": "app.tasks.notification_tasks.run_review_checks",
        "schedule": crontab(hour=11, minute=0),
    },
}

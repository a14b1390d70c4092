"""
Application configuration management using Pydantic Settings
Handles all environment variables and notification engine settings
"""

from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings"""

    # Application Settings
    APP_NAME: str = "Marketplace Notifications API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database Configuration
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    # Redis Configuration
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_MAX_CONNECTIONS: int = 50
    REALTIME_CHANNEL_PREFIX: str = "notifications"

    # Security Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS Configuration
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Web Push (VAPID)
    VAPID_PUBLIC_KEY: Optional[str] = None
    VAPID_PRIVATE_KEY: Optional[str] = None
    VAPID_EMAIL: str = "noreply@marketplace.app"
    PUSH_TTL_SECONDS: int = 24 * 60 * 60
    PUSH_DEFAULT_ICON: str = "/icons/notification-icon.png"
    PUSH_DEFAULT_BADGE: str = "/icons/notification-badge.png"

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TIMEZONE: str = "Africa/Lagos"

    # Business Logic Settings
    CURRENCY_SYMBOL: str = "₦"
    HIGH_VALUE_ORDER_THRESHOLD: float = 100000
    LOW_STOCK_THRESHOLD: int = 10
    OUT_OF_STOCK_THRESHOLD: int = 0
    RESTOCK_THRESHOLD: int = 5
    POPULAR_PRODUCT_ORDER_COUNT: int = 20
    COUPON_USAGE_WARNING_PERCENTAGE: float = 80
    COUPON_EXPIRY_WARNING_DAYS: int = 3
    PRICE_DROP_MIN_PERCENTAGE: float = 10
    PRICE_DROP_MIN_AMOUNT: float = 1000
    REVIEW_MILESTONE_COUNTS: List[int] = [5, 10, 25, 50, 100, 250, 500]
    REVIEW_REMINDER_DAYS_AFTER_DELIVERY: int = 7

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Realtime
    REALTIME_POLL_INTERVAL_SECONDS: float = 15

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def database_url_async(self) -> str:
        """Convert sync database URL to async"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        elif self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")
        return self.DATABASE_URL

    @property
    def push_configured(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()

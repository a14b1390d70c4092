"""Notification, preference and push subscription schemas for request/response models."""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
import uuid

from app.models.notification import NotificationType, NotificationChannel


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    type: str
    order_id: Optional[uuid.UUID] = None
    return_id: Optional[uuid.UUID] = None
    reference_url: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    page_count: int


class NotificationListResponse(BaseModel):
    data: List[NotificationResponse]
    meta: PageMeta


class ReadResponse(BaseModel):
    success: bool = True
    notification: NotificationResponse
    already_read: bool = False


class MarkAllReadRequest(BaseModel):
    type: Optional[NotificationType] = Field(None, description="Only mark notifications of this type")
    max_age: Optional[int] = Field(None, gt=0, description="Only notifications newer than this many days")


class MarkAllUnreadRequest(BaseModel):
    confirm: Optional[str] = Field(None, description='Must be "mark-all-unread"')


class UnreadCountFilters(BaseModel):
    type: Optional[str] = None
    max_age: Optional[int] = None


class UnreadCountResponse(BaseModel):
    success: bool = True
    count: int
    filters: UnreadCountFilters


class NotificationCategory(BaseModel):
    value: str
    label: str
    description: str


# Preferences

class PreferenceItem(BaseModel):
    type: NotificationType
    channel: NotificationChannel = NotificationChannel.IN_APP
    enabled: bool


class PreferenceResponse(PreferenceItem):
    id: uuid.UUID
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PreferenceBulkUpdate(BaseModel):
    preferences: List[PreferenceItem] = Field(..., min_length=1)


# Push subscriptions

class SubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class SubscriptionPayload(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: SubscriptionKeys

    @field_validator("endpoint")
    @classmethod
    def endpoint_is_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("Subscription endpoint must be an https URL")
        return v


class PushSubscriptionCreate(BaseModel):
    subscription: SubscriptionPayload
    user_agent: Optional[str] = Field(None, max_length=500)


class PushSubscriptionDelete(BaseModel):
    endpoint: Optional[str] = None


class PushSubscriptionResponse(BaseModel):
    id: uuid.UUID
    endpoint: str
    user_agent: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PushTestRequest(BaseModel):
    title: str = Field("Test Notification", max_length=255)
    body: str = Field("This is a test notification", max_length=1000)
    url: Optional[str] = None

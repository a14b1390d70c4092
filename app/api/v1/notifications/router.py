"""In-app notification endpoints"""

from fastapi import APIRouter, Depends, Query, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
import uuid
import logging

from app.core.database import get_db
from app.core.security import get_current_user
from app.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
    InternalServerException,
    ConfirmationRequiredException,
)
from app.core.config import settings
from app.models.notification import Notification
from app.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    PageMeta,
    ReadResponse,
    MarkAllReadRequest,
    MarkAllUnreadRequest,
    UnreadCountResponse,
    UnreadCountFilters,
    NotificationCategory,
)
from app.services.notifications import NotificationStore, StoreError, NotFoundError, notification_categories
from app.services.notifications.preferences import normalize_type

router = APIRouter()
logger = logging.getLogger(__name__)

MARK_ALL_UNREAD_CONFIRMATION = "mark-all-unread"

async def _owned(store: NotificationStore, notification_id: uuid.UUID, current_user: dict) -> Notification:
    try:
        notification = await store.get(notification_id)
    except NotFoundError:
        raise NotFoundException("Notification not found")
    if str(notification.user_id) != str(current_user["id"]):
        raise ForbiddenException("Not allowed to access this notification")
    return notification

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    unread_only: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's notifications, newest first"""
    store = NotificationStore(db)
    try:
        result = await store.list(current_user["id"], page=page, limit=limit, unread_only=unread_only)
    except StoreError as e:
        raise InternalServerException(str(e))

    return NotificationListResponse(
        data=[NotificationResponse.model_validate(n) for n in result.items],
        meta=PageMeta(total=result.total, page=result.page, limit=result.limit, page_count=result.page_count),
    )

@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    type: Optional[str] = Query(None),
    max_age: Optional[int] = Query(None, description="Only count notifications newer than this many days"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if type is not None:
        try:
            type = normalize_type(type)
        except ValueError:
            raise BadRequestException(f"Invalid notification type: {type}")
    if max_age is not None and max_age <= 0:
        raise BadRequestException("max_age must be a positive number of days")

    try:
        count = await NotificationStore(db).unread_count(current_user["id"], type=type, max_age_days=max_age)
    except StoreError as e:
        raise InternalServerException(str(e))

    return UnreadCountResponse(count=count, filters=UnreadCountFilters(type=type, max_age=max_age))

@router.get("/categories", response_model=List[NotificationCategory])
async def get_categories(current_user: dict = Depends(get_current_user)):
    return notification_categories()

@router.post("/mark-all-read")
async def mark_all_read(
    request: Optional[MarkAllReadRequest] = Body(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark every unread notification read, optionally filtered by type and age"""
    request = request or MarkAllReadRequest()
    try:
        updated = await NotificationStore(db).mark_all_read(
            current_user["id"],
            type=request.type.value if request.type else None,
            max_age_days=request.max_age,
        )
    except StoreError as e:
        raise InternalServerException(str(e))

    return {"success": True, "updated": updated}

@router.delete("/mark-all-read")
async def mark_all_unread(
    request: Optional[MarkAllUnreadRequest] = Body(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark every notification unread; requires an explicit confirmation token"""
    if request is None or request.confirm != MARK_ALL_UNREAD_CONFIRMATION:
        raise ConfirmationRequiredException(MARK_ALL_UNREAD_CONFIRMATION)

    try:
        updated = await NotificationStore(db).mark_all_unread(current_user["id"])
    except StoreError as e:
        raise InternalServerException(str(e))

    logger.warning(f"User {current_user['id']} marked {updated} notifications unread")
    return {"success": True, "updated": updated}

@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _owned(NotificationStore(db), notification_id, current_user)

@router.post("/{notification_id}/read", response_model=ReadResponse)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    store = NotificationStore(db)
    notification = await _owned(store, notification_id, current_user)
    if notification.is_read:
        return ReadResponse(notification=NotificationResponse.model_validate(notification), already_read=True)

    try:
        notification = await store.mark_read(notification.id)
    except StoreError as e:
        raise InternalServerException(str(e))
    return ReadResponse(notification=NotificationResponse.model_validate(notification))

@router.delete("/{notification_id}/read", response_model=ReadResponse)
async def mark_unread(
    notification_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    store = NotificationStore(db)
    notification = await _owned(store, notification_id, current_user)
    try:
        notification = await store.mark_unread(notification.id)
    except StoreError as e:
        raise InternalServerException(str(e))
    return ReadResponse(notification=NotificationResponse.model_validate(notification))

@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Deleting an already deleted notification is not an error"""
    store = NotificationStore(db)
    try:
        notification = await store.get(notification_id)
    except NotFoundError:
        return {"success": True, "message": "Notification already deleted"}

    if str(notification.user_id) != str(current_user["id"]):
        raise ForbiddenException("Not allowed to delete this notification")

    try:
        await store.delete(notification.id)
    except StoreError as e:
        raise InternalServerException(str(e))
    return {"success": True, "message": "Notification deleted"}

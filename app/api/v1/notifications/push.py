"""Web Push subscription endpoints"""

from fastapi import APIRouter, Depends, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
import logging

from app.core.database import get_db
from app.core.security import get_current_user
from app.core.exceptions import BadRequestException
from app.schemas.notification import (
    PushSubscriptionCreate,
    PushSubscriptionDelete,
    PushSubscriptionResponse,
    PushTestRequest,
)
from app.services.notifications import WebPushService, build_payload

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("", response_model=PushSubscriptionResponse)
async def save_subscription(
    request: PushSubscriptionCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Register (or refresh) this browser's push endpoint"""
    service = WebPushService(db)
    try:
        return await service.save_subscription(
            user_id=current_user["id"],
            endpoint=request.subscription.endpoint,
            p256dh_key=request.subscription.keys.p256dh,
            auth_key=request.subscription.keys.auth,
            user_agent=request.user_agent,
        )
    except ValueError as e:
        raise BadRequestException(str(e))

@router.delete("")
async def remove_subscription(
    request: Optional[PushSubscriptionDelete] = Body(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if request is None or not request.endpoint:
        raise BadRequestException("Endpoint is required")

    removed = await WebPushService(db).remove_subscription(current_user["id"], request.endpoint)
    return {"success": True, "removed": removed}

@router.get("", response_model=List[PushSubscriptionResponse])
async def list_subscriptions(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await WebPushService(db).list_subscriptions(current_user["id"])

@router.post("/test")
async def send_test_push(
    request: Optional[PushTestRequest] = Body(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Send a test push to every active subscription of the caller"""
    request = request or PushTestRequest()
    payload = build_payload(
        title=request.title,
        body=request.body,
        data={"type": "test", "url": request.url or "/notifications"},
    )
    result = await WebPushService(db).send(current_user["id"], payload)
    if not result.success:
        logger.warning(f"Test push for user {current_user['id']} failed: {result.error}")
    return result.to_dict()

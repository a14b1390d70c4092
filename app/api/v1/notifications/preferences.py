"""Notification preference endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.core.security import get_current_user
from app.core.exceptions import BadRequestException
from app.schemas.notification import PreferenceItem, PreferenceResponse, PreferenceBulkUpdate
from app.services.notifications import NotificationPreferenceService

router = APIRouter()

@router.get("", response_model=List[PreferenceResponse])
async def list_preferences(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Explicit overrides only; anything not listed is enabled"""
    return await NotificationPreferenceService(db).list_preferences(current_user["id"])

@router.post("", response_model=PreferenceResponse)
async def set_preference(
    request: PreferenceItem,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = NotificationPreferenceService(db)
    try:
        return await service.set_preference(current_user["id"], request.type, request.channel, request.enabled)
    except ValueError as e:
        raise BadRequestException(str(e))

@router.put("", response_model=List[PreferenceResponse])
async def update_preferences(
    request: PreferenceBulkUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = NotificationPreferenceService(db)
    try:
        return await service.update_preferences(
            current_user["id"],
            [item.model_dump() for item in request.preferences],
        )
    except ValueError as e:
        raise BadRequestException(str(e))

@router.delete("")
async def reset_preferences(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    removed = await NotificationPreferenceService(db).reset_to_defaults(current_user["id"])
    return {"success": True, "removed": removed}

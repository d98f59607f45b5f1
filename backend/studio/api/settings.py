"""
User generation preferences.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.dependencies import get_current_user
from studio.database import get_db
from studio.models.user import User
from studio.schemas.settings import UserSettingsUpdate, UserSettingsResponse
from studio.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=UserSettingsResponse)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return UserSettingsResponse(**await SettingsService.get_settings(db, current_user.id))


@router.post("", response_model=UserSettingsResponse)
async def update_settings(
    request: UserSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Upsert preferences. All three fields are required and the model must exist."""
    user_id = current_user.id
    try:
        updated = await SettingsService.update_settings(
            db,
            user_id=user_id,
            preferred_model=request.preferred_model,
            preferred_resolution=request.preferred_resolution,
            preferred_aspect_ratio=request.preferred_aspect_ratio,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(
        f"Settings updated for user {user_id}",
        extra={"event": "settings_updated", "user_id": user_id, "model_id": updated["preferred_model"]}
    )
    return UserSettingsResponse(**updated)

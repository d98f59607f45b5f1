"""
AI model catalog.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.dependencies import get_optional_user
from studio.config import settings
from studio.database import get_db
from studio.models.user import User
from studio.schemas.settings import AIModelResponse, ModelsResponse
from studio.services.settings_service import SettingsService

router = APIRouter()


@router.get("", response_model=ModelsResponse)
async def list_models(
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Catalog ordered by XP cost, with the caller's preferred model (default when anonymous)."""
    models = await SettingsService.list_models(db)
    preferred = settings.default_model_id
    if current_user is not None:
        preferred = await SettingsService.get_preferred_model(db, current_user.id)

    return ModelsResponse(
        models=[AIModelResponse.model_validate(m) for m in models],
        user_preferred_model=preferred,
    )

"""
User generation preferences and the AI model catalog.
"""
from typing import List, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.config import settings
from studio.models.ai_model import AIModel
from studio.models.user_settings import UserSettings

DEFAULT_RESOLUTION = "1024x1024"
DEFAULT_ASPECT_RATIO = "1:1"


class SettingsService:

    @staticmethod
    async def list_models(db: AsyncSession) -> List[AIModel]:
        """All catalog models, cheapest first."""
        result = await db.execute(
            select(AIModel).order_by(AIModel.xp_cost.asc(), AIModel.display_order.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_settings(db: AsyncSession, user_id: int) -> Dict[str, Any]:
        """Stored preferences, or defaults when the user has none."""
        result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
        row = result.scalar_one_or_none()
        if row is None:
            return {
                "preferred_model": settings.default_model_id,
                "preferred_resolution": DEFAULT_RESOLUTION,
                "preferred_aspect_ratio": DEFAULT_ASPECT_RATIO,
            }
        return {
            "preferred_model": row.preferred_model,
            "preferred_resolution": row.preferred_resolution,
            "preferred_aspect_ratio": row.preferred_aspect_ratio,
        }

    @staticmethod
    async def get_preferred_model(db: AsyncSession, user_id: int) -> str:
        result = await db.execute(
            select(UserSettings.preferred_model).where(UserSettings.user_id == user_id)
        )
        return result.scalar_one_or_none() or settings.default_model_id

    @staticmethod
    async def update_settings(
        db: AsyncSession,
        user_id: int,
        preferred_model: str,
        preferred_resolution: str,
        preferred_aspect_ratio: str,
    ) -> Dict[str, Any]:
        """
        Upsert the user's preferences.

        Raises:
            ValueError: Missing field or unknown model
        """
        if not preferred_model or not preferred_resolution or not preferred_aspect_ratio:
            raise ValueError("Missing required fields")

        result = await db.execute(select(AIModel.id).where(AIModel.model_id == preferred_model))
        if result.scalar_one_or_none() is None:
            raise ValueError(f"Unknown model: {preferred_model}")

        result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
        row = result.scalar_one_or_none()
        if row is None:
            row = UserSettings(user_id=user_id)
            db.add(row)

        row.preferred_model = preferred_model
        row.preferred_resolution = preferred_resolution
        row.preferred_aspect_ratio = preferred_aspect_ratio
        await db.commit()

        return {
            "preferred_model": preferred_model,
            "preferred_resolution": preferred_resolution,
            "preferred_aspect_ratio": preferred_aspect_ratio,
        }

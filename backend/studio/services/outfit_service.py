"""
Outfit template catalog and admin CRUD.
"""
import logging
from typing import List, Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.outfit_template import OutfitTemplate

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "description",
    "outfit_image_url",
    "category",
    "ai_prompt",
    "display_order",
    "is_active",
)

NON_NULLABLE_FIELDS = ("outfit_image_url", "category", "display_order", "is_active")


class OutfitService:
    """Service for outfit template lookups and management."""

    @staticmethod
    async def get(db: AsyncSession, outfit_id: int) -> Optional[OutfitTemplate]:
        result = await db.execute(select(OutfitTemplate).where(OutfitTemplate.id == outfit_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active(db: AsyncSession, outfit_id: int) -> Optional[OutfitTemplate]:
        result = await db.execute(
            select(OutfitTemplate)
            .where(OutfitTemplate.id == outfit_id)
            .where(OutfitTemplate.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_all(db: AsyncSession) -> List[OutfitTemplate]:
        result = await db.execute(
            select(OutfitTemplate).order_by(OutfitTemplate.display_order.asc(), OutfitTemplate.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create(db: AsyncSession, data: Dict[str, Any]) -> OutfitTemplate:
        """
        Raises:
            ValueError: Name or description missing
        """
        if not all((data.get(field) or "").strip() for field in ("name", "description")):
            raise ValueError("Name and description are required")

        values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        if not (values.get("ai_prompt") or "").strip():
            values.pop("ai_prompt", None)

        outfit = OutfitTemplate(**values)
        db.add(outfit)
        await db.commit()
        await db.refresh(outfit)

        logger.info(
            f"Outfit template created: {outfit.id}",
            extra={"event": "outfit_created", "outfit_id": outfit.id}
        )
        return outfit

    @staticmethod
    async def update(db: AsyncSession, outfit_id: int, data: Dict[str, Any]) -> OutfitTemplate:
        """
        Raises:
            ValueError: Outfit template not found, or a required field was
                blanked or set to null
        """
        outfit = await OutfitService.get(db, outfit_id)
        if outfit is None:
            raise ValueError("Outfit template not found")

        for field in ("name", "description"):
            if field in data and not (data[field] or "").strip():
                raise ValueError("Name and description are required")

        for field in NON_NULLABLE_FIELDS:
            if field in data and data[field] is None:
                raise ValueError(f"{field} cannot be null")

        for key, value in data.items():
            if key in EDITABLE_FIELDS:
                setattr(outfit, key, value)

        await db.commit()
        await db.refresh(outfit)

        logger.info(
            f"Outfit template updated: {outfit.id}",
            extra={"event": "outfit_updated", "outfit_id": outfit.id}
        )
        return outfit

    @staticmethod
    async def delete(db: AsyncSession, outfit_id: int) -> None:
        """
        Raises:
            ValueError: Outfit template not found
        """
        outfit = await OutfitService.get(db, outfit_id)
        if outfit is None:
            raise ValueError("Outfit template not found")

        await db.delete(outfit)
        await db.commit()

        logger.info(
            f"Outfit template deleted: {outfit_id}",
            extra={"event": "outfit_deleted", "outfit_id": outfit_id}
        )

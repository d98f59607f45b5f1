"""
Template catalog queries and admin CRUD.
"""
import logging
from typing import List, Optional, Dict, Any

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from studio.config import settings
from studio.models.template import Template
from studio.utils.slug import slugify

logger = logging.getLogger(__name__)

# Fields an admin may set on a template
EDITABLE_FIELDS = (
    "title",
    "description",
    "image_url",
    "ai_prompt",
    "is_active",
    "coming_soon",
    "display_order",
    "tags",
)

# Editable fields backed by NOT NULL columns
NON_NULLABLE_FIELDS = ("is_active", "coming_soon", "display_order")


class TemplateService:
    """Service for template lookups and management."""

    @staticmethod
    async def list_active(db: AsyncSession, query: Optional[str] = None) -> List[Template]:
        """
        Active templates in display order, optionally filtered by a
        case-insensitive substring of title, tags or description.
        """
        stmt = select(Template).where(Template.is_active.is_(True))

        if query and query.strip():
            pattern = f"%{query.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Template.title).like(pattern),
                    func.lower(func.coalesce(Template.tags, "")).like(pattern),
                    func.lower(Template.description).like(pattern),
                )
            )

        stmt = stmt.order_by(Template.display_order.asc(), Template.id.asc())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_featured(db: AsyncSession) -> List[Template]:
        """Configured featured templates that are active, in configured order."""
        ids = list(settings.featured_template_ids)
        if not ids:
            return []

        result = await db.execute(
            select(Template)
            .where(Template.id.in_(ids))
            .where(Template.is_active.is_(True))
        )
        by_id = {template.id: template for template in result.scalars().all()}
        return [by_id[template_id] for template_id in ids if template_id in by_id]

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str) -> Optional[Template]:
        """First active template (display order) whose title slugifies to slug."""
        wanted = slugify(slug)
        if not wanted:
            return None

        for template in await TemplateService.list_active(db):
            if template.slug == wanted:
                return template
        return None

    @staticmethod
    async def get(db: AsyncSession, template_id: int) -> Optional[Template]:
        result = await db.execute(select(Template).where(Template.id == template_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_related(db: AsyncSession, template_id: int, limit: int = 8) -> List[Template]:
        """
        Other active templates. Those sharing a tag with the given template
        come first, each group in display order.

        Raises:
            ValueError: Template not found
        """
        template = await TemplateService.get(db, template_id)
        if template is None:
            raise ValueError("Template not found")

        own_tags = {tag.lower() for tag in template.tag_list}
        others = [t for t in await TemplateService.list_active(db) if t.id != template_id]

        sharing = [t for t in others if own_tags & {tag.lower() for tag in t.tag_list}]
        rest = [t for t in others if t not in sharing]
        return (sharing + rest)[:limit]

    # Admin operations

    @staticmethod
    async def list_all(db: AsyncSession) -> List[Template]:
        result = await db.execute(
            select(Template).order_by(Template.display_order.asc(), Template.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create(db: AsyncSession, data: Dict[str, Any]) -> Template:
        """
        Raises:
            ValueError: Title, description or image URL missing
        """
        if not all((data.get(field) or "").strip() for field in ("title", "description", "image_url")):
            raise ValueError("Title, description, and image URL are required")

        template = Template(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None})
        db.add(template)
        await db.commit()
        await db.refresh(template)

        logger.info(
            f"Template created: {template.id}",
            extra={"event": "template_created", "template_id": template.id}
        )
        return template

    @staticmethod
    async def update(db: AsyncSession, template_id: int, data: Dict[str, Any]) -> Template:
        """
        Raises:
            ValueError: Template not found, a required field was blanked, or a
                non-nullable field was set to null
        """
        template = await TemplateService.get(db, template_id)
        if template is None:
            raise ValueError("Template not found")

        for field in ("title", "description", "image_url"):
            if field in data and not (data[field] or "").strip():
                raise ValueError("Title, description, and image URL are required")

        for field in NON_NULLABLE_FIELDS:
            if field in data and data[field] is None:
                raise ValueError(f"{field} cannot be null")

        for key, value in data.items():
            if key in EDITABLE_FIELDS:
                setattr(template, key, value)

        await db.commit()
        await db.refresh(template)

        logger.info(
            f"Template updated: {template.id}",
            extra={"event": "template_updated", "template_id": template.id}
        )
        return template

    @staticmethod
    async def delete(db: AsyncSession, template_id: int) -> None:
        """
        Raises:
            ValueError: Template not found
        """
        template = await TemplateService.get(db, template_id)
        if template is None:
            raise ValueError("Template not found")

        await db.delete(template)
        await db.commit()

        logger.info(
            f"Template deleted: {template_id}",
            extra={"event": "template_deleted", "template_id": template_id}
        )

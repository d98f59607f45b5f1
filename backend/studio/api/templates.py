"""
Public template catalog and prompt unlocks.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.dependencies import get_current_user, get_optional_user
from studio.database import get_db
from studio.models.user import User
from studio.schemas.template import (
    TemplateResponse,
    TemplateListResponse,
    PromptViewStatus,
    PromptUnlockResponse,
)
from studio.services.credit_service import InsufficientXPError
from studio.services.prompt_view_service import PromptViewService
from studio.services.template_service import TemplateService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    q: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Active templates in display order. q filters title, tags and description."""
    templates = await TemplateService.list_active(db, q)
    return TemplateListResponse(templates=[TemplateResponse.from_template(t) for t in templates])


@router.get("/featured", response_model=TemplateListResponse)
async def list_featured_templates(db: AsyncSession = Depends(get_db)):
    templates = await TemplateService.list_featured(db)
    return TemplateListResponse(templates=[TemplateResponse.from_template(t) for t in templates])


@router.get("/{slug}", response_model=TemplateResponse)
async def get_template_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db),
):
    """Resolve a template page slug. The stored prompt is never exposed here."""
    template = await TemplateService.get_by_slug(db, slug)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return TemplateResponse.from_template(template)


@router.get("/{template_id}/related", response_model=TemplateListResponse)
async def list_related_templates(
    template_id: int,
    db: AsyncSession = Depends(get_db),
):
    try:
        templates = await TemplateService.list_related(db, template_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return TemplateListResponse(templates=[TemplateResponse.from_template(t) for t in templates])


@router.get("/{template_id}/prompt-view", response_model=PromptViewStatus)
async def get_prompt_view_status(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Whether the caller already unlocked this template's prompt (false when anonymous)."""
    if current_user is None:
        return PromptViewStatus(has_viewed=False)
    return PromptViewStatus(
        has_viewed=await PromptViewService.has_viewed(db, current_user.id, template_id)
    )


@router.post("/{template_id}/prompt-view", response_model=PromptUnlockResponse)
async def unlock_template_prompt(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Reveal the template's prompt. Charges XP only the first time per user.
    """
    user_id = current_user.id
    try:
        unlock = await PromptViewService.unlock_template_prompt(db, user_id, template_id)
    except InsufficientXPError as e:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=e.to_detail())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(
            f"Failed to unlock prompt: {str(e)}",
            extra={"event": "prompt_unlock_failed", "user_id": user_id, "template_id": template_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to unlock prompt: {str(e)}"
        )

    return PromptUnlockResponse(
        prompt=unlock.prompt,
        xp_deducted=unlock.xp_charged,
        new_xp=unlock.new_xp,
    )

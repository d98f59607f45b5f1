"""
Prompt unlocks: paying XP to read the prompt behind a template or a generation.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.config import settings
from studio.models.generation import Generation
from studio.models.prompt_view import TemplatePromptView
from studio.models.template import Template
from studio.services.credit_service import CreditService
from studio.utils.logging import log_xp_debited
from studio.utils.metrics import xp_debited_total

logger = logging.getLogger(__name__)


@dataclass
class PromptUnlock:
    prompt: str
    xp_charged: int
    new_xp: int


class PromptViewService:
    """Charges at most once per (user, template)."""

    @staticmethod
    async def has_viewed(db: AsyncSession, user_id: int, template_id: int) -> bool:
        result = await db.execute(
            select(TemplatePromptView.id)
            .where(TemplatePromptView.user_id == user_id)
            .where(TemplatePromptView.template_id == template_id)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def unlock_template_prompt(db: AsyncSession, user_id: int, template_id: int) -> PromptUnlock:
        """
        Reveal a template's prompt, charging prompt_view_cost the first time.

        The debit and the view row commit together. A concurrent duplicate
        trips the unique constraint and its debit is rolled back.

        Raises:
            ValueError: Template not found or has no prompt
            InsufficientXPError: First view and balance too low
        """
        result = await db.execute(select(Template.ai_prompt).where(Template.id == template_id))
        row = result.first()
        if row is None:
            raise ValueError("Template not found")
        prompt = row[0]
        if not prompt:
            raise ValueError("No prompt available for this template")

        if await PromptViewService.has_viewed(db, user_id, template_id):
            return PromptUnlock(prompt=prompt, xp_charged=0, new_xp=await CreditService.get_balance(db, user_id))

        cost = settings.prompt_view_cost
        await CreditService.debit_or_raise(db, user_id, cost, commit=False)
        db.add(TemplatePromptView(user_id=user_id, template_id=template_id, xp_cost=cost))

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(
                f"Prompt for template {template_id} already unlocked by user {user_id}",
                extra={"event": "prompt_view_duplicate", "user_id": user_id, "template_id": template_id}
            )
            return PromptUnlock(prompt=prompt, xp_charged=0, new_xp=await CreditService.get_balance(db, user_id))

        xp_debited_total.labels(reason="prompt_view").inc(cost)
        log_xp_debited(logger, user_id=user_id, amount=cost, reason="prompt_view", template_id=template_id)
        return PromptUnlock(prompt=prompt, xp_charged=cost, new_xp=await CreditService.get_balance(db, user_id))

    @staticmethod
    async def reveal_generation_prompt(db: AsyncSession, user_id: int, generation_id: int) -> PromptUnlock:
        """
        Reveal the prompt used by one of the user's own generations.
        Free when the generation's template prompt is already unlocked.

        Raises:
            ValueError: Generation not found or has no prompt
            PermissionError: Generation belongs to another user
            InsufficientXPError: Balance too low
        """
        result = await db.execute(
            select(Generation.user_id, Generation.template_id, Generation.prompt_used)
            .where(Generation.id == generation_id)
        )
        row = result.first()
        if row is None:
            raise ValueError("Generation not found")

        owner_id, template_id, prompt = row
        if owner_id != user_id:
            raise PermissionError("Unauthorized")
        if not prompt:
            raise ValueError("No prompt available for this generation")

        if template_id is not None and await PromptViewService.has_viewed(db, user_id, template_id):
            return PromptUnlock(prompt=prompt, xp_charged=0, new_xp=await CreditService.get_balance(db, user_id))

        cost = settings.prompt_view_cost
        await CreditService.debit_or_raise(db, user_id, cost)
        xp_debited_total.labels(reason="generation_prompt").inc(cost)
        log_xp_debited(logger, user_id=user_id, amount=cost, reason="generation_prompt", generation_id=generation_id)

        return PromptUnlock(prompt=prompt, xp_charged=cost, new_xp=await CreditService.get_balance(db, user_id))

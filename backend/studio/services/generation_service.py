"""
Generation service: reserve XP, call the image provider, persist the result.

Every generation follows the same sequence:
1. Debit XP and insert a pending Generation row in one transaction.
2. Call the provider (no retries).
3. Store both images and mark the generation completed, or mark it failed
   and refund the XP in the same commit.

Leaving PENDING is always a conditional UPDATE on status, so a request
that settles late and the stale-generation sweep never both refund.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.ai.factory import get_image_provider
from studio.ai.prompts import HAIRSTYLES, build_outfit_prompt, build_refine_prompt, build_template_prompt
from studio.config import settings
from studio.models.ai_model import AIModel
from studio.models.generation import Generation, GenerationKind, GenerationStatus
from studio.models.template import Template
from studio.models.user_settings import UserSettings
from studio.services.credit_service import CreditService
from studio.services.outfit_service import OutfitService
from studio.services.vision_service import VisionService
from studio.storage import get_image_store
from studio.utils.logging import (
    log_generation_started,
    log_generation_completed,
    log_generation_failed,
    log_xp_debited,
)
from studio.utils.metrics import (
    generations_total,
    generation_duration_seconds,
    xp_debited_total,
    xp_refunded_total,
)

logger = logging.getLogger(__name__)


class GenerationFailedError(Exception):
    """The provider or storage failed; the reserved XP has been refunded."""

    def __init__(self, generation: Generation, message: str):
        self.generation = generation
        self.refunded = generation.xp_cost
        super().__init__(message)


class DuplicateGenerationError(Exception):
    """A generation with the same idempotency key already exists for the user."""

    def __init__(self, generation: Generation):
        self.generation = generation
        super().__init__(f"Generation already exists for key {generation.idempotency_key}")


class GenerationService:
    """Service for running paid image generations."""

    @staticmethod
    async def get_default_model(db: AsyncSession) -> AIModel:
        """
        The configured default model. Falls back to an unsaved AIModel built
        from settings when the catalog row is missing.
        """
        result = await db.execute(
            select(AIModel).where(AIModel.model_id == settings.default_model_id)
        )
        model = result.scalar_one_or_none()
        if model is not None:
            return model

        return AIModel(
            model_id=settings.default_model_id,
            model_name=settings.default_model_name,
            provider="gemini",
            xp_cost=settings.default_model_xp_cost,
            is_active=True,
        )

    @staticmethod
    async def resolve_model(
        db: AsyncSession,
        user_id: int,
        selected_model: Optional[str] = None,
    ) -> AIModel:
        """
        Pick the model for a generation: explicit selection, else the user's
        preferred model, else the default. Unknown or inactive models fall
        back to the default.
        """
        model_id = selected_model
        if not model_id:
            result = await db.execute(
                select(UserSettings.preferred_model).where(UserSettings.user_id == user_id)
            )
            model_id = result.scalar_one_or_none()

        if model_id:
            result = await db.execute(
                select(AIModel)
                .where(AIModel.model_id == model_id)
                .where(AIModel.is_active.is_(True))
            )
            model = result.scalar_one_or_none()
            if model is not None:
                return model
            logger.info(
                f"Model {model_id} unavailable, using default {settings.default_model_id}",
                extra={"event": "model_fallback", "user_id": user_id, "model_id": model_id}
            )

        return await GenerationService.get_default_model(db)

    @staticmethod
    async def get_by_idempotency_key(
        db: AsyncSession,
        user_id: int,
        idempotency_key: str,
    ) -> Optional[Generation]:
        result = await db.execute(
            select(Generation)
            .where(Generation.user_id == user_id)
            .where(Generation.idempotency_key == idempotency_key)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def reserve(
        db: AsyncSession,
        user_id: int,
        kind: GenerationKind,
        xp_cost: int,
        prompt: str,
        model: AIModel,
        template_id: Optional[int] = None,
        template_title: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Generation:
        """
        Debit XP and insert a pending generation in one transaction.

        Raises:
            InsufficientXPError: Balance below xp_cost (nothing written)
            DuplicateGenerationError: idempotency_key already used (no debit)
        """
        if idempotency_key:
            existing = await GenerationService.get_by_idempotency_key(db, user_id, idempotency_key)
            if existing is not None:
                raise DuplicateGenerationError(existing)

        await CreditService.debit_or_raise(db, user_id, xp_cost, commit=False)

        generation = Generation(
            user_id=user_id,
            template_id=template_id,
            template_title=template_title,
            kind=kind,
            status=GenerationStatus.PENDING,
            xp_cost=xp_cost,
            prompt_used=prompt,
            model_id=model.model_id,
            model_name=model.model_name,
            idempotency_key=idempotency_key,
        )
        db.add(generation)

        try:
            await db.commit()
        except IntegrityError:
            # A concurrent request with the same key won; the debit is rolled back with it
            await db.rollback()
            existing = await GenerationService.get_by_idempotency_key(db, user_id, idempotency_key)
            if existing is None:
                raise
            raise DuplicateGenerationError(existing)

        xp_debited_total.labels(reason=kind.value).inc(xp_cost)
        log_xp_debited(logger, user_id=user_id, amount=xp_cost, reason=kind.value, generation_id=generation.id)
        return generation

    @staticmethod
    async def run(
        db: AsyncSession,
        user_id: int,
        kind: GenerationKind,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        xp_cost: int,
        model: AIModel,
        template_id: Optional[int] = None,
        template_title: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        reference_images: Optional[List[Tuple[bytes, str]]] = None,
    ) -> Generation:
        """
        Reserve XP, call the provider and settle the generation.

        Returns:
            The completed Generation

        Raises:
            InsufficientXPError, DuplicateGenerationError: from reserve()
            GenerationFailedError: provider or storage failure (XP refunded)
        """
        generation = await GenerationService.reserve(
            db,
            user_id=user_id,
            kind=kind,
            xp_cost=xp_cost,
            prompt=prompt,
            model=model,
            template_id=template_id,
            template_title=template_title,
            idempotency_key=idempotency_key,
        )

        log_generation_started(
            logger,
            generation_id=generation.id,
            user_id=user_id,
            kind=kind.value,
            xp_cost=xp_cost,
            model_id=model.model_id,
            template_id=template_id,
        )

        start_time = time.time()
        try:
            provider = get_image_provider(model.provider, model.model_id)
            generated_bytes = await provider.generate_image(
                image_bytes, mime_type, prompt, reference_images=reference_images
            )

            store = get_image_store()
            original_url = await store.save(image_bytes, mime_type, "uploads")
            generated_url = await store.save(generated_bytes, "image/png", "generated")
        except Exception as e:
            duration = time.time() - start_time
            await GenerationService._fail(db, generation, str(e))
            generations_total.labels(kind=kind.value, status="failed").inc()
            generation_duration_seconds.labels(kind=kind.value).observe(duration)
            log_generation_failed(
                logger,
                generation_id=generation.id,
                user_id=user_id,
                refunded=generation.xp_cost,
                duration_ms=duration * 1000,
                error=str(e),
                kind=kind.value,
            )
            raise GenerationFailedError(generation, "Failed to generate image") from e
        except BaseException:
            # Cancelled or interrupted mid-call: settle before propagating
            await asyncio.shield(GenerationService._fail(db, generation, "Generation interrupted"))
            generations_total.labels(kind=kind.value, status="failed").inc()
            logger.warning(
                f"Generation {generation.id} interrupted, {generation.xp_cost} XP refunded",
                extra={"event": "generation_interrupted", "generation_id": generation.id, "user_id": user_id}
            )
            raise

        completed = await db.execute(
            update(Generation)
            .where(Generation.id == generation.id)
            .where(Generation.status == GenerationStatus.PENDING)
            .values(
                status=GenerationStatus.COMPLETED,
                original_image_url=original_url,
                generated_image_url=generated_url,
                completed_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(generation)

        if completed.rowcount == 0:
            # The stale sweep already failed and refunded this generation
            raise GenerationFailedError(generation, "Generation timed out")

        duration = time.time() - start_time
        generations_total.labels(kind=kind.value, status="completed").inc()
        generation_duration_seconds.labels(kind=kind.value).observe(duration)
        log_generation_completed(
            logger,
            generation_id=generation.id,
            user_id=user_id,
            duration_ms=duration * 1000,
            kind=kind.value,
        )
        return generation

    @staticmethod
    async def _settle_failed(
        db: AsyncSession,
        generation_id: int,
        user_id: int,
        xp_cost: int,
        kind: GenerationKind,
        error: str,
    ) -> bool:
        """
        Move a pending generation to failed and refund its XP in one commit.

        Returns:
            False when the generation had already left PENDING (nothing refunded)
        """
        result = await db.execute(
            update(Generation)
            .where(Generation.id == generation_id)
            .where(Generation.status == GenerationStatus.PENDING)
            .values(status=GenerationStatus.FAILED, error=error[:2000], completed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            return False

        if xp_cost > 0:
            await CreditService.credit(db, user_id, xp_cost, commit=False)
        await db.commit()
        if xp_cost > 0:
            xp_refunded_total.labels(kind=kind.value).inc(xp_cost)
        return True

    @staticmethod
    async def _fail(db: AsyncSession, generation: Generation, error: str) -> None:
        """Mark the generation failed and refund its XP in the same commit."""
        await GenerationService._settle_failed(
            db,
            generation_id=generation.id,
            user_id=generation.user_id,
            xp_cost=generation.xp_cost,
            kind=generation.kind,
            error=error,
        )
        await db.refresh(generation)

    @staticmethod
    async def fail_stale_pending(db: AsyncSession, older_than_minutes: Optional[int] = None) -> int:
        """
        Fail and refund generations stuck in PENDING, e.g. after a worker
        restart between reserve and settle.

        Returns:
            Number of generations refunded
        """
        minutes = older_than_minutes if older_than_minutes is not None else settings.stale_generation_minutes
        cutoff = datetime.utcnow() - timedelta(minutes=minutes)

        result = await db.execute(
            select(Generation.id, Generation.user_id, Generation.xp_cost, Generation.kind)
            .where(Generation.status == GenerationStatus.PENDING)
            .where(Generation.created_at < cutoff)
        )
        stale = result.all()

        refunded = 0
        for generation_id, user_id, xp_cost, kind in stale:
            if await GenerationService._settle_failed(
                db, generation_id, user_id, xp_cost, kind, "Generation timed out"
            ):
                refunded += 1
                generations_total.labels(kind=kind.value, status="failed").inc()
                logger.warning(
                    f"Stale generation {generation_id} failed, {xp_cost} XP refunded",
                    extra={"event": "generation_stale", "generation_id": generation_id, "user_id": user_id}
                )

        return refunded

    @staticmethod
    async def generate_from_template(
        db: AsyncSession,
        user_id: int,
        template_id: int,
        image_bytes: bytes,
        mime_type: str,
        custom_prompt: Optional[str] = None,
        selected_model: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Generation:
        """
        Apply a template to an uploaded photo. Costs the selected model's XP price.

        Raises:
            ValueError: Template not found
        """
        result = await db.execute(select(Template).where(Template.id == template_id))
        template = result.scalar_one_or_none()
        if template is None:
            raise ValueError("Template not found")

        model = await GenerationService.resolve_model(db, user_id, selected_model)
        prompt = build_template_prompt(custom_prompt, template.ai_prompt)

        return await GenerationService.run(
            db,
            user_id=user_id,
            kind=GenerationKind.TEMPLATE,
            image_bytes=image_bytes,
            mime_type=mime_type,
            prompt=prompt,
            xp_cost=model.xp_cost,
            model=model,
            template_id=template.id,
            template_title=template.title,
            idempotency_key=idempotency_key,
        )

    @staticmethod
    async def refine(
        db: AsyncSession,
        user_id: int,
        image_bytes: bytes,
        mime_type: str,
        custom_prompt: str,
        selected_model: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Generation:
        """
        Refine a previously generated image with a free-text request.

        Raises:
            ValueError: Empty refinement request
        """
        if not custom_prompt or not custom_prompt.strip():
            raise ValueError("Image and prompt are required")

        model = await GenerationService.resolve_model(db, user_id, selected_model)
        return await GenerationService.run(
            db,
            user_id=user_id,
            kind=GenerationKind.REFINE,
            image_bytes=image_bytes,
            mime_type=mime_type,
            prompt=build_refine_prompt(custom_prompt.strip()),
            xp_cost=settings.refine_cost,
            model=model,
            idempotency_key=idempotency_key,
        )

    @staticmethod
    async def try_hairstyle(
        db: AsyncSession,
        user_id: int,
        hairstyle_id: int,
        image_bytes: bytes,
        mime_type: str,
        idempotency_key: Optional[str] = None,
    ) -> Generation:
        """
        Render the user's photo with one of the catalog hairstyles.

        Raises:
            ValueError: Unknown hairstyle id
        """
        hairstyle = HAIRSTYLES.get(hairstyle_id)
        if hairstyle is None:
            raise ValueError("Invalid hairstyle ID")

        model = await GenerationService.get_default_model(db)
        return await GenerationService.run(
            db,
            user_id=user_id,
            kind=GenerationKind.HAIRSTYLE,
            image_bytes=image_bytes,
            mime_type=mime_type,
            prompt=hairstyle["prompt"],
            xp_cost=settings.hairstyle_cost,
            model=model,
            template_id=None,
            template_title=hairstyle["name"],
            idempotency_key=idempotency_key,
        )

    @staticmethod
    async def try_outfit(
        db: AsyncSession,
        user_id: int,
        image_bytes: bytes,
        mime_type: str,
        outfit_template_id: Optional[int] = None,
        outfit_bytes: Optional[bytes] = None,
        outfit_mime_type: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Generation:
        """
        Dress the person in the uploaded photo in a garment. The garment is
        an uploaded outfit image, else the image of an active outfit template.
        A template also supplies its name and prompt override.

        Raises:
            ValueError: No garment given, outfit template not found, or its
                image is unreadable
        """
        outfit = None
        if outfit_template_id is not None:
            outfit = await OutfitService.get_active(db, outfit_template_id)
            if outfit is None:
                raise ValueError("Outfit template not found")

        if outfit_bytes is None:
            if outfit is None or not outfit.outfit_image_url:
                raise ValueError("Outfit image or outfit template is required")
            outfit_bytes, outfit_mime_type = await VisionService.load_image(outfit.outfit_image_url)

        model = await GenerationService.get_default_model(db)
        return await GenerationService.run(
            db,
            user_id=user_id,
            kind=GenerationKind.OUTFIT,
            image_bytes=image_bytes,
            mime_type=mime_type,
            prompt=build_outfit_prompt(outfit.ai_prompt if outfit else None),
            xp_cost=settings.outfit_cost,
            model=model,
            template_id=None,
            template_title=outfit.name if outfit else "Custom outfit",
            idempotency_key=idempotency_key,
            reference_images=[(outfit_bytes, outfit_mime_type or "image/jpeg")],
        )

    @staticmethod
    async def get_user_generation(db: AsyncSession, generation_id: int) -> Optional[Generation]:
        result = await db.execute(select(Generation).where(Generation.id == generation_id))
        return result.scalar_one_or_none()

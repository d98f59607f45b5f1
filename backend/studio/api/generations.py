"""
Generation endpoints: template generation, refinement, hairstyle and outfit try-on,
enhancement suggestions and prompt reveal.
"""
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession

from studio.ai.base import ProviderError
from studio.auth.dependencies import get_current_user
from studio.config import settings
from studio.database import get_db
from studio.models.user import User
from studio.schemas.generation import (
    GenerationResponse,
    GenerationResult,
    SuggestionsRequest,
    SuggestionsResponse,
)
from studio.schemas.template import PromptUnlockResponse
from studio.services.credit_service import CreditService, InsufficientXPError
from studio.services.generation_service import (
    GenerationService,
    GenerationFailedError,
    DuplicateGenerationError,
)
from studio.services.prompt_view_service import PromptViewService
from studio.services.vision_service import VisionService
from studio.utils.uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


def _generation_error(e: Exception) -> HTTPException:
    """Map a generation-flow exception to its HTTP response."""
    if isinstance(e, InsufficientXPError):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=e.to_detail())
    if isinstance(e, DuplicateGenerationError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Duplicate request",
                "generation": GenerationResponse.model_validate(e.generation).model_dump(mode="json"),
            }
        )
    if isinstance(e, GenerationFailedError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": str(e), "refunded": e.refunded}
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def _result(db: AsyncSession, user_id: int, generation) -> GenerationResult:
    return GenerationResult(
        generation=GenerationResponse.model_validate(generation),
        new_xp=await CreditService.get_balance(db, user_id),
    )


@router.post("", response_model=GenerationResult, status_code=status.HTTP_201_CREATED)
async def create_generation(
    image: UploadFile = File(None),
    template_id: int = Form(...),
    custom_prompt: Optional[str] = Form(None),
    selected_model: Optional[str] = Form(None),
    idempotency_key: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Apply a template to an uploaded photo.

    The model's XP price is reserved before the provider call and refunded
    if the call fails.
    """
    user_id = current_user.id
    start_time = time.time()

    try:
        image_bytes, mime_type = await read_image_upload(image, settings.max_upload_bytes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        generation = await GenerationService.generate_from_template(
            db,
            user_id=user_id,
            template_id=template_id,
            image_bytes=image_bytes,
            mime_type=mime_type,
            custom_prompt=custom_prompt,
            selected_model=selected_model,
            idempotency_key=idempotency_key or None,
        )
    except (InsufficientXPError, DuplicateGenerationError, GenerationFailedError) as e:
        raise _generation_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to create generation: {str(e)}",
            extra={"event": "generation_error", "user_id": user_id, "template_id": template_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create generation: {str(e)}"
        )

    logger.info(
        f"Generation {generation.id} served in {(time.time() - start_time) * 1000:.0f}ms",
        extra={"event": "generation_served", "user_id": user_id, "generation_id": generation.id}
    )
    return await _result(db, user_id, generation)


@router.post("/refine", response_model=GenerationResult, status_code=status.HTTP_201_CREATED)
async def refine_generation(
    image: UploadFile = File(None),
    custom_prompt: Optional[str] = Form(None),
    selected_model: Optional[str] = Form(None),
    idempotency_key: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Refine a generated image with a free-text request."""
    user_id = current_user.id

    try:
        image_bytes, mime_type = await read_image_upload(image, settings.max_upload_bytes)
        generation = await GenerationService.refine(
            db,
            user_id=user_id,
            image_bytes=image_bytes,
            mime_type=mime_type,
            custom_prompt=custom_prompt,
            selected_model=selected_model,
            idempotency_key=idempotency_key or None,
        )
    except (InsufficientXPError, DuplicateGenerationError, GenerationFailedError, ValueError) as e:
        raise _generation_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to refine image: {str(e)}",
            extra={"event": "refine_error", "user_id": user_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to refine image: {str(e)}"
        )

    return await _result(db, user_id, generation)


@router.post("/hairstyle", response_model=GenerationResult, status_code=status.HTTP_201_CREATED)
async def try_hairstyle(
    image: UploadFile = File(None),
    hairstyle_id: int = Form(...),
    idempotency_key: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Render the photo with a catalog hairstyle from the face analysis."""
    user_id = current_user.id

    try:
        image_bytes, mime_type = await read_image_upload(image, settings.max_upload_bytes)
        generation = await GenerationService.try_hairstyle(
            db,
            user_id=user_id,
            hairstyle_id=hairstyle_id,
            image_bytes=image_bytes,
            mime_type=mime_type,
            idempotency_key=idempotency_key or None,
        )
    except (InsufficientXPError, DuplicateGenerationError, GenerationFailedError, ValueError) as e:
        raise _generation_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to generate hairstyle: {str(e)}",
            extra={"event": "hairstyle_error", "user_id": user_id, "hairstyle_id": hairstyle_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate hairstyle: {str(e)}"
        )

    return await _result(db, user_id, generation)


@router.post("/outfit", response_model=GenerationResult, status_code=status.HTTP_201_CREATED)
async def try_outfit(
    image: UploadFile = File(None),
    outfit_image: UploadFile = File(None),
    outfit_template_id: Optional[int] = Form(None),
    idempotency_key: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Put an outfit on the person in the photo. The garment is an uploaded
    outfit_image or the image of an outfit template.
    """
    user_id = current_user.id

    try:
        image_bytes, mime_type = await read_image_upload(image, settings.max_upload_bytes)
        outfit_bytes, outfit_mime_type = None, None
        if outfit_image is not None:
            outfit_bytes, outfit_mime_type = await read_image_upload(outfit_image, settings.max_upload_bytes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        generation = await GenerationService.try_outfit(
            db,
            user_id=user_id,
            image_bytes=image_bytes,
            mime_type=mime_type,
            outfit_template_id=outfit_template_id,
            outfit_bytes=outfit_bytes,
            outfit_mime_type=outfit_mime_type,
            idempotency_key=idempotency_key or None,
        )
    except (InsufficientXPError, DuplicateGenerationError, GenerationFailedError) as e:
        raise _generation_error(e)
    except ValueError as e:
        code = status.HTTP_404_NOT_FOUND if str(e) == "Outfit template not found" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to generate outfit: {str(e)}",
            extra={"event": "outfit_error", "user_id": user_id, "outfit_template_id": outfit_template_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate outfit: {str(e)}"
        )

    return await _result(db, user_id, generation)


@router.post("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    request: SuggestionsRequest,
    current_user: User = Depends(get_current_user),
):
    """Free enhancement ideas for a generated image."""
    user_id = current_user.id
    try:
        suggestions = await VisionService.enhancement_suggestions(request.image_url)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except Exception as e:
        logger.error(
            f"Failed to generate suggestions: {str(e)}",
            extra={"event": "suggestions_error", "user_id": user_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate suggestions: {str(e)}"
        )

    return SuggestionsResponse(suggestions=suggestions)


@router.post("/{generation_id}/prompt", response_model=PromptUnlockResponse)
async def reveal_generation_prompt(
    generation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_id = current_user.id
    try:
        unlock = await PromptViewService.reveal_generation_prompt(db, user_id, generation_id)
    except InsufficientXPError as e:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=e.to_detail())
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return PromptUnlockResponse(
        prompt=unlock.prompt,
        xp_deducted=unlock.xp_charged,
        new_xp=unlock.new_xp,
    )

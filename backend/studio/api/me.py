"""
User profile endpoints.
Returns information about the authenticated user.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession

from studio.config import settings
from studio.database import get_db
from studio.models.user import User
from studio.auth.dependencies import get_current_user
from studio.schemas.user import MeResponse, HistoryResponse, HistoryItem, ProfilePictureResponse
from studio.services.credit_service import CreditService
from studio.services.user_service import UserService
from studio.storage import get_image_store
from studio.utils.uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=MeResponse)
async def get_me(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Get the authenticated user's profile with the current XP balance.
    """
    response = MeResponse.model_validate(current_user)
    response.xp = await CreditService.get_balance(db, current_user.id)
    return response


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Last completed generations plus the distinct photos the user uploaded for them.
    """
    history = await UserService.get_history(db, current_user.id)
    return HistoryResponse(
        uploads=history["uploads"],
        generations=[
            HistoryItem(
                id=g.id,
                url=g.generated_image_url,
                template=g.template_title,
                kind=g.kind.value,
                created_at=g.created_at,
            )
            for g in history["generations"]
        ],
    )


@router.post("/profile-picture", response_model=ProfilePictureResponse)
async def upload_profile_picture(
    file: UploadFile = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Replace the profile picture. Images only, up to 5 MB.
    The previous picture is deleted when it lives in our store.
    """
    user_id = current_user.id
    try:
        data, content_type = await read_image_upload(file, settings.max_profile_picture_bytes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        store = get_image_store()
        url = await store.save(data, content_type, "profiles")
        previous = await UserService.set_profile_picture(db, user_id, url)
        if previous and previous != url:
            # External pictures (e.g. Google avatars) are not ours to delete
            await store.delete(previous)
    except Exception as e:
        logger.error(
            f"Failed to upload profile picture: {str(e)}",
            extra={"event": "profile_picture_failed", "user_id": user_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload profile picture: {str(e)}"
        )

    return ProfilePictureResponse(profile_picture=url)

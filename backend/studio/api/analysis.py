"""
Face-shape analysis for hairstyle recommendations. Free of charge.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File

from studio.ai.base import ProviderError
from studio.auth.dependencies import get_current_user
from studio.config import settings
from studio.models.user import User
from studio.schemas.generation import FaceAnalysisResponse
from studio.services.vision_service import VisionService
from studio.utils.uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=FaceAnalysisResponse)
async def analyze_face(
    image: UploadFile = File(None),
    current_user: User = Depends(get_current_user),
):
    """
    Detect the face shape in a photo and recommend up to three hairstyles.
    The recommended hairstyle ids feed POST /api/generations/hairstyle.
    """
    user_id = current_user.id
    try:
        image_bytes, mime_type = await read_image_upload(image, settings.max_upload_bytes)
        analysis = await VisionService.analyze_face(image_bytes, mime_type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProviderError as e:
        logger.warning(
            f"Face analysis provider failure: {str(e)}",
            extra={"event": "face_analysis_failed", "user_id": user_id}
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to analyze face")
    except Exception as e:
        logger.error(
            f"Failed to analyze face: {str(e)}",
            extra={"event": "face_analysis_error", "user_id": user_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to analyze face: {str(e)}"
        )

    logger.info(
        f"Face analyzed for user {user_id}: {analysis['detected_shape']}",
        extra={"event": "face_analyzed", "user_id": user_id, "face_shape": analysis["detected_shape"]}
    )
    return FaceAnalysisResponse(**analysis)

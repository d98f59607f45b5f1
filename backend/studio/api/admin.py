"""
Admin endpoints: template and outfit catalog management and image uploads.
All routes require an admin account.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.dependencies import require_admin
from studio.config import settings
from studio.database import get_db
from studio.models.user import User
from studio.schemas.outfit import (
    OutfitTemplateResponse,
    OutfitTemplateCreate,
    OutfitTemplateUpdate,
)
from studio.schemas.template import (
    AdminTemplateResponse,
    TemplateCreate,
    TemplateUpdate,
    UploadResponse,
)
from studio.services.outfit_service import OutfitService
from studio.services.template_service import TemplateService
from studio.storage import get_image_store
from studio.utils.uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/templates", response_model=List[AdminTemplateResponse])
async def list_all_templates(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Every template, including inactive ones and their prompts."""
    return await TemplateService.list_all(db)


@router.post("/templates", response_model=AdminTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    request: TemplateCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    try:
        return await TemplateService.create(db, request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/templates/{template_id}", response_model=AdminTemplateResponse)
async def update_template(
    template_id: int,
    request: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Partial update: only fields present in the body are changed."""
    try:
        return await TemplateService.update(db, template_id, request.model_dump(exclude_unset=True))
    except ValueError as e:
        code = status.HTTP_404_NOT_FOUND if str(e) == "Template not found" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(e))


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    try:
        await TemplateService.delete(db, template_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"success": True}


@router.get("/outfits", response_model=List[OutfitTemplateResponse])
async def list_outfits(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Every outfit template, including inactive ones."""
    return await OutfitService.list_all(db)


@router.post("/outfits", response_model=OutfitTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_outfit(
    request: OutfitTemplateCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    try:
        return await OutfitService.create(db, request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/outfits/{outfit_id}", response_model=OutfitTemplateResponse)
async def update_outfit(
    outfit_id: int,
    request: OutfitTemplateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Partial update: only fields present in the body are changed."""
    try:
        return await OutfitService.update(db, outfit_id, request.model_dump(exclude_unset=True))
    except ValueError as e:
        code = status.HTTP_404_NOT_FOUND if str(e) == "Outfit template not found" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(e))


@router.delete("/outfits/{outfit_id}")
async def delete_outfit(
    outfit_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    try:
        await OutfitService.delete(db, outfit_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"success": True}


@router.post("/uploads", response_model=UploadResponse)
async def upload_template_image(
    file: UploadFile = File(None),
    admin: User = Depends(require_admin),
):
    """Store a template reference image and return its public URL."""
    admin_id = admin.id
    try:
        data, content_type = await read_image_upload(file, settings.max_upload_bytes)
        url = await get_image_store().save(data, content_type, "templates")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(
            f"Failed to upload template image: {str(e)}",
            extra={"event": "template_upload_error", "user_id": admin_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload image: {str(e)}"
        )

    logger.info(
        f"Template image uploaded by admin {admin_id}: {url}",
        extra={"event": "template_image_uploaded", "user_id": admin_id}
    )
    return UploadResponse(url=url)

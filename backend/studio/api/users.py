"""
Public user profiles.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.database import get_db
from studio.schemas.user import PublicProfileResponse
from studio.services.user_service import UserService

router = APIRouter()


@router.get("/{username}", response_model=PublicProfileResponse)
async def get_public_profile(
    username: str,
    db: AsyncSession = Depends(get_db),
):
    """Username, picture, join date and number of completed generations."""
    profile = await UserService.get_public_profile(db, username)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return PublicProfileResponse(**profile)

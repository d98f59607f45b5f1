"""
Pydantic schemas for profile endpoints.
"""
from pydantic import BaseModel, EmailStr
from typing import Optional, List
from datetime import datetime


class MeResponse(BaseModel):
    """Authenticated user's own profile."""
    id: int
    username: str
    email: EmailStr
    profile_picture: Optional[str] = None
    xp: int
    email_verified: bool
    provider: str
    is_admin: bool
    created_at: datetime

    class Config:
        from_attributes = True


class HistoryItem(BaseModel):
    id: int
    url: str
    template: Optional[str] = None
    kind: str
    created_at: datetime


class HistoryResponse(BaseModel):
    uploads: List[str]
    generations: List[HistoryItem]


class ProfilePictureResponse(BaseModel):
    profile_picture: str


class PublicProfileResponse(BaseModel):
    username: str
    profile_picture: Optional[str] = None
    created_at: datetime
    total_generations: int

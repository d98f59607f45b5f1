"""
Pydantic schemas for outfit template endpoints.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class OutfitTemplateResponse(BaseModel):
    id: int
    name: str
    description: str
    outfit_image_url: str
    category: str
    ai_prompt: Optional[str] = None
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OutfitTemplateCreate(BaseModel):
    """Name and description are validated by the service so blanks map to 400."""
    name: Optional[str] = None
    description: Optional[str] = None
    outfit_image_url: str = ""
    category: str = "change-outfit"
    ai_prompt: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class OutfitTemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    outfit_image_url: Optional[str] = None
    category: Optional[str] = None
    ai_prompt: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None

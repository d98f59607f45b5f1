"""
Pydantic schemas for template endpoints.
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class TemplateResponse(BaseModel):
    """Public template view. The AI prompt is never included."""
    id: int
    title: str
    slug: str
    description: str
    image_url: str
    coming_soon: bool
    display_order: int
    tags: List[str]
    has_prompt: bool

    @classmethod
    def from_template(cls, template) -> "TemplateResponse":
        return cls(
            id=template.id,
            title=template.title,
            slug=template.slug,
            description=template.description,
            image_url=template.image_url,
            coming_soon=template.coming_soon,
            display_order=template.display_order,
            tags=template.tag_list,
            has_prompt=bool(template.ai_prompt),
        )


class TemplateListResponse(BaseModel):
    templates: List[TemplateResponse]


class AdminTemplateResponse(BaseModel):
    """Full template row for admins."""
    id: int
    title: str
    description: str
    image_url: str
    ai_prompt: Optional[str] = None
    is_active: bool
    coming_soon: bool
    display_order: int
    tags: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateCreate(BaseModel):
    """Required fields are validated by the service so blanks map to 400."""
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    ai_prompt: Optional[str] = None
    is_active: bool = True
    coming_soon: bool = False
    display_order: int = 0
    tags: Optional[str] = None


class TemplateUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    ai_prompt: Optional[str] = None
    is_active: Optional[bool] = None
    coming_soon: Optional[bool] = None
    display_order: Optional[int] = None
    tags: Optional[str] = None


class PromptViewStatus(BaseModel):
    has_viewed: bool


class PromptUnlockResponse(BaseModel):
    success: bool = True
    prompt: str
    xp_deducted: int = Field(..., description="0 when the prompt was already unlocked")
    new_xp: int


class UploadResponse(BaseModel):
    url: str

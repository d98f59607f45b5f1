"""
Pydantic schemas for generation and analysis endpoints.
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from studio.models.generation import GenerationKind, GenerationStatus


class GenerationResponse(BaseModel):
    """Schema for generation response."""
    id: int
    kind: GenerationKind
    status: GenerationStatus
    template_id: Optional[int] = None
    template_title: Optional[str] = None
    original_image_url: Optional[str] = None
    generated_image_url: Optional[str] = None
    xp_cost: int
    model_id: Optional[str] = None
    model_name: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GenerationResult(BaseModel):
    """Completed generation plus the caller's remaining XP."""
    success: bool = True
    generation: GenerationResponse
    new_xp: int


class SuggestionsRequest(BaseModel):
    image_url: Optional[str] = None


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


class HairstyleRecommendation(BaseModel):
    name: str
    description: str
    hairstyle_id: int
    reason: str


class FaceAnalysisResponse(BaseModel):
    success: bool = True
    face_shape: str
    detected_shape: str
    recommendations: List[HairstyleRecommendation]

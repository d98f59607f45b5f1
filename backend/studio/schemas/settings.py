"""
Pydantic schemas for model catalog and user settings endpoints.
"""
from pydantic import BaseModel
from typing import Optional, List


class AIModelResponse(BaseModel):
    model_id: str
    model_name: str
    provider: str
    xp_cost: int
    is_active: bool

    class Config:
        from_attributes = True
        protected_namespaces = ()


class ModelsResponse(BaseModel):
    models: List[AIModelResponse]
    user_preferred_model: str

    class Config:
        protected_namespaces = ()


class UserSettingsUpdate(BaseModel):
    """All fields are required; presence is checked by the service so blanks map to 400."""
    preferred_model: Optional[str] = None
    preferred_resolution: Optional[str] = None
    preferred_aspect_ratio: Optional[str] = None

    class Config:
        protected_namespaces = ()


class UserSettingsResponse(BaseModel):
    preferred_model: str
    preferred_resolution: str
    preferred_aspect_ratio: str

    class Config:
        protected_namespaces = ()


class XPDeductRequest(BaseModel):
    amount: int
    reason: Optional[str] = None


class XPDeductResponse(BaseModel):
    success: bool = True
    new_xp: int
    deducted: int
    reason: Optional[str] = None

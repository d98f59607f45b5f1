"""
Pydantic schemas for API request/response validation.
"""
from studio.schemas.generation import GenerationResponse, GenerationResult
from studio.schemas.template import TemplateResponse, AdminTemplateResponse

__all__ = [
    "GenerationResponse",
    "GenerationResult",
    "TemplateResponse",
    "AdminTemplateResponse",
]

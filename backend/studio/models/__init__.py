"""
Database models package.
"""
from studio.models.base import Base
from studio.models.user import User
from studio.models.template import Template
from studio.models.outfit_template import OutfitTemplate
from studio.models.generation import Generation, GenerationStatus, GenerationKind
from studio.models.user_settings import UserSettings
from studio.models.ai_model import AIModel
from studio.models.prompt_view import TemplatePromptView
from studio.models.payment import Payment, PaymentStatus

__all__ = [
    "Base",
    "User",
    "Template",
    "OutfitTemplate",
    "Generation",
    "GenerationStatus",
    "GenerationKind",
    "UserSettings",
    "AIModel",
    "TemplatePromptView",
    "Payment",
    "PaymentStatus",
]

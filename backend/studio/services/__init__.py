"""
Business logic services.
"""
from studio.services.credit_service import CreditService, InsufficientXPError
from studio.services.generation_service import GenerationService
from studio.services.prompt_view_service import PromptViewService
from studio.services.settings_service import SettingsService
from studio.services.template_service import TemplateService
from studio.services.user_service import UserService

__all__ = [
    "CreditService",
    "InsufficientXPError",
    "GenerationService",
    "PromptViewService",
    "SettingsService",
    "TemplateService",
    "UserService",
]

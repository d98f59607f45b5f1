"""
Image provider factory.
Selects the provider implementation for an AIModel's provider name.
"""
import logging
from typing import Optional

from studio.config import settings
from studio.ai.base import ImageProvider
from studio.ai.gemini_provider import GeminiImageProvider
from studio.ai.openai_provider import OpenAIImageProvider

logger = logging.getLogger(__name__)

PROVIDERS = {
    "gemini": GeminiImageProvider,
    "openai": OpenAIImageProvider,
}


def get_image_provider(provider_name: str, model_id: str) -> ImageProvider:
    """
    Factory function to get the provider for a model.

    Args:
        provider_name: "gemini" or "openai" (AIModel.provider)
        model_id: Upstream model name

    Returns:
        ImageProvider instance

    Raises:
        ValueError: If provider is unknown
    """
    provider_cls = PROVIDERS.get((provider_name or "gemini").lower())
    if provider_cls is None:
        logger.error(f"Unknown AI provider: {provider_name}")
        raise ValueError(
            f"Invalid AI provider: {provider_name}. "
            f"Must be one of: {', '.join(sorted(PROVIDERS))}"
        )

    provider = provider_cls(model_id)
    if not provider.is_configured():
        logger.warning(f"{provider_cls.__name__} selected but API key not configured")
    return provider


def get_vision_provider(model_id: Optional[str] = None) -> ImageProvider:
    """
    Provider used for text analysis of images (face shape, suggestions).
    Always Gemini.
    """
    return GeminiImageProvider(model_id or settings.vision_model_id)

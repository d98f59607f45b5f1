"""
AI provider abstraction module.
Provides a unified interface for generative image providers.
"""
from studio.ai.factory import get_image_provider, get_vision_provider
from studio.ai.base import ImageProvider, ProviderError

__all__ = ["get_image_provider", "get_vision_provider", "ImageProvider", "ProviderError"]

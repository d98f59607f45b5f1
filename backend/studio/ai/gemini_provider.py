"""
Google Gemini provider implementation.
Uses the google-genai SDK for image generation (image models return inline
image parts) and for text analysis of images.
"""
import logging
from typing import List, Optional, Tuple

from google import genai
from google.genai import types

from studio.ai.base import ImageProvider, ProviderError
from studio.config import settings
from studio.utils.ai_metrics import track_ai_provider_metrics_async

logger = logging.getLogger(__name__)


class GeminiImageProvider(ImageProvider):
    """
    Gemini provider.

    API keys are stored in environment variables and never exposed to clients.
    """

    provider_name = "gemini"

    def __init__(self, model_id: str):
        super().__init__(model_id)
        self.api_key = settings.google_ai_api_key

        if self.api_key:
            self.client = genai.Client(api_key=self.api_key)
        else:
            self.client = None

    def is_configured(self) -> bool:
        """Check if Google AI API key is configured."""
        return bool(self.api_key)

    def _contents(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        reference_images: Optional[List[Tuple[bytes, str]]] = None,
    ) -> list:
        parts = [types.Part.from_text(text=prompt)]
        for data, ref_mime in reference_images or []:
            parts.append(types.Part.from_bytes(data=data, mime_type=ref_mime))
        parts.append(types.Part.from_bytes(data=image_bytes, mime_type=mime_type))
        return parts

    @track_ai_provider_metrics_async("gemini", "generate_image")
    async def generate_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        reference_images: Optional[List[Tuple[bytes, str]]] = None,
    ) -> bytes:
        if not self.is_configured() or not self.client:
            raise ProviderError("Google AI API key not configured")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_id,
                contents=self._contents(image_bytes, mime_type, prompt, reference_images),
            )
        except Exception as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        if not response.candidates:
            raise ProviderError("No image generated")

        image_parts = [
            part.inline_data.data
            for part in (response.candidates[0].content.parts or [])
            if part.inline_data and part.inline_data.data
        ]
        if not image_parts:
            raise ProviderError("No image generated")

        return image_parts[0]

    @track_ai_provider_metrics_async("gemini", "analyze_image")
    async def analyze_image(self, image_bytes: bytes, mime_type: str, prompt: str) -> str:
        if not self.is_configured() or not self.client:
            raise ProviderError("Google AI API key not configured")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_id,
                contents=self._contents(image_bytes, mime_type, prompt),
            )
        except Exception as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        return (response.text or "").strip()

"""
OpenAI provider implementation.
Uses the OpenAI SDK image edit endpoint for generation and chat completions
with image input for analysis.
"""
import base64
import logging
from typing import List, Optional, Tuple

from openai import AsyncOpenAI

from studio.ai.base import ImageProvider, ProviderError
from studio.config import settings
from studio.utils.ai_metrics import track_ai_provider_metrics_async

logger = logging.getLogger(__name__)


def _upload_file(name: str, data: bytes, mime_type: str) -> tuple:
    extension = mime_type.split("/")[-1] if "/" in mime_type else "png"
    return (f"{name}.{extension}", data, mime_type)


class OpenAIImageProvider(ImageProvider):
    """
    OpenAI provider.

    - Generation: images.edit with the uploaded photo, reference images first
      (gpt-image-1 style models accept several)
    - Analysis: chat completion with an inline data URL image

    API keys are stored in environment variables and never exposed to clients.
    """

    provider_name = "openai"
    analysis_model = "gpt-4o-mini"

    def __init__(self, model_id: str):
        super().__init__(model_id)
        self.api_key = settings.openai_api_key

        if self.api_key:
            self.client = AsyncOpenAI(api_key=self.api_key)
        else:
            self.client = None

    def is_configured(self) -> bool:
        """Check if OpenAI API key is configured."""
        return bool(self.api_key)

    @track_ai_provider_metrics_async("openai", "generate_image")
    async def generate_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        reference_images: Optional[List[Tuple[bytes, str]]] = None,
    ) -> bytes:
        if not self.is_configured() or not self.client:
            raise ProviderError("OpenAI API key not configured")

        images = [
            _upload_file(f"reference-{index}", data, ref_mime)
            for index, (data, ref_mime) in enumerate(reference_images or [])
        ]
        images.append(_upload_file("upload", image_bytes, mime_type))
        try:
            response = await self.client.images.edit(
                model=self.model_id,
                image=images if len(images) > 1 else images[0],
                prompt=prompt,
            )
        except Exception as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        if not response.data or not response.data[0].b64_json:
            raise ProviderError("No image generated")

        return base64.b64decode(response.data[0].b64_json)

    @track_ai_provider_metrics_async("openai", "analyze_image")
    async def analyze_image(self, image_bytes: bytes, mime_type: str, prompt: str) -> str:
        if not self.is_configured() or not self.client:
            raise ProviderError("OpenAI API key not configured")

        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        try:
            response = await self.client.chat.completions.create(
                model=self.analysis_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
                max_tokens=500,
            )
        except Exception as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        return (response.choices[0].message.content or "").strip()

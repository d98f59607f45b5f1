"""
Base class for generative image providers.
All providers must implement this interface to ensure compatibility.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple


class ImageProvider(ABC):
    """
    Abstract base class for generative image providers.

    This interface lets the generation service call any backend without
    knowing which one is behind the selected model.

    All providers must implement:
    - generate_image(): Transform an input photo following a text prompt
    - analyze_image(): Answer a text prompt about an image
    """

    provider_name: str = "unknown"

    def __init__(self, model_id: str):
        self.model_id = model_id

    @abstractmethod
    async def generate_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        reference_images: Optional[List[Tuple[bytes, str]]] = None,
    ) -> bytes:
        """
        Generate a new image from an input image and a prompt.

        Args:
            image_bytes: Raw bytes of the uploaded image
            mime_type: MIME type of the uploaded image (e.g. image/png)
            prompt: Instruction text
            reference_images: (bytes, mime_type) pairs sent ahead of the
                uploaded image, e.g. the garment for an outfit try-on

        Returns:
            Raw bytes of the generated image (PNG)

        Raises:
            ProviderError: If the provider call fails or returns no image
        """
        pass

    @abstractmethod
    async def analyze_image(self, image_bytes: bytes, mime_type: str, prompt: str) -> str:
        """
        Ask the model a question about an image and return its text answer.

        Raises:
            ProviderError: If the provider call fails
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if provider is properly configured (API key present, etc.).
        """
        pass


class ProviderError(Exception):
    """Raised when an image provider cannot produce a result."""
    pass

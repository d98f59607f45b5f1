"""
Image store interface.

Uploaded originals, generated results, profile pictures and template images
are written through an ImageStore and referenced afterwards only by URL.
"""
import uuid
from abc import ABC, abstractmethod
from typing import Optional, Tuple

# Mapping of content types to file extensions
CONTENT_TYPE_EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/jpg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
    'image/gif': 'gif',
    'image/heic': 'heic',
    'image/heif': 'heif',
}

EXTENSION_CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
    'gif': 'image/gif',
    'heic': 'image/heic',
    'heif': 'image/heif',
}


def get_extension(content_type: str) -> str:
    return CONTENT_TYPE_EXTENSIONS.get((content_type or '').lower(), 'png')


def guess_content_type(key: str) -> str:
    extension = key.rsplit('.', 1)[-1].lower() if '.' in key else ''
    return EXTENSION_CONTENT_TYPES.get(extension, 'image/png')


def generate_object_key(folder: str, content_type: str) -> str:
    """
    Pattern: {folder}/{uuid}.{ext}

    Folders are "uploads", "generated", "profiles" and "templates".
    """
    return f"{folder}/{uuid.uuid4().hex}.{get_extension(content_type)}"


class ImageStore(ABC):
    """Abstract image store."""

    @abstractmethod
    async def save(self, data: bytes, content_type: str, folder: str) -> str:
        """Persist bytes and return the public URL."""
        pass

    @abstractmethod
    async def read(self, url: str) -> Optional[Tuple[bytes, str]]:
        """Return (bytes, content_type) for a URL this store issued, or None."""
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Delete the object behind a URL this store issued. Missing objects count as deleted."""
        pass

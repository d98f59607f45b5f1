"""
Storage module for generated and uploaded images.

Backends:
- local: filesystem under MEDIA_ROOT (default)
- r2: Cloudflare R2 / S3-compatible bucket
"""
from typing import Optional

from studio.config import settings
from studio.storage.base import ImageStore
from studio.storage.local_store import LocalImageStore

# Singleton R2 store (boto3 clients are reusable across requests)
_r2_store: Optional[ImageStore] = None


def get_image_store() -> ImageStore:
    """Return the image store selected by STORAGE_BACKEND."""
    global _r2_store

    backend = (settings.storage_backend or "local").lower()
    if backend == "r2":
        if _r2_store is None:
            from studio.storage.r2_client import R2ImageStore
            _r2_store = R2ImageStore()
        return _r2_store
    if backend == "local":
        return LocalImageStore(settings.media_root, settings.media_url_prefix)
    raise ValueError(f"Invalid storage backend: {backend}. Must be one of: 'local', 'r2'")


__all__ = ["get_image_store", "ImageStore", "LocalImageStore"]

"""
Validation of multipart image uploads.
"""
from typing import Optional, Tuple

from fastapi import UploadFile


async def read_image_upload(upload: Optional[UploadFile], max_bytes: int) -> Tuple[bytes, str]:
    """
    Read an uploaded image into memory.

    Returns:
        (bytes, content_type)

    Raises:
        ValueError: Missing file, non-image content type, or larger than max_bytes
    """
    if upload is None:
        raise ValueError("Image is required")

    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise ValueError("File must be an image")

    # Read one byte past the limit so oversized files are detected without buffering them whole
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValueError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    if not data:
        raise ValueError("Image is required")

    return data, content_type

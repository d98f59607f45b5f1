"""
Filesystem image store.

Writes under MEDIA_ROOT and returns URLs under MEDIA_URL_PREFIX. Serving
those URLs is left to the web server in front of the API.
"""
import asyncio
import logging
import os
from typing import Optional, Tuple

from studio.storage.base import ImageStore, generate_object_key, guess_content_type

logger = logging.getLogger(__name__)


class LocalImageStore(ImageStore):

    def __init__(self, root: str, url_prefix: str):
        self.root = os.path.abspath(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def _key_for_url(self, url: str) -> Optional[str]:
        prefix = self.url_prefix + "/"
        if not url or not url.startswith(prefix):
            return None
        key = url[len(prefix):]
        # Refuse keys that would escape the media root
        path = os.path.abspath(os.path.join(self.root, key))
        if not path.startswith(self.root + os.sep):
            return None
        return key

    def _write(self, key: str, data: bytes) -> None:
        path = os.path.join(self.root, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    async def save(self, data: bytes, content_type: str, folder: str) -> str:
        key = generate_object_key(folder, content_type)
        await asyncio.to_thread(self._write, key, data)
        logger.debug(f"Stored {len(data)} bytes at {key}")
        return f"{self.url_prefix}/{key}"

    async def read(self, url: str) -> Optional[Tuple[bytes, str]]:
        key = self._key_for_url(url)
        if key is None:
            return None
        path = os.path.join(self.root, key)
        if not os.path.isfile(path):
            return None

        def _read() -> bytes:
            with open(path, "rb") as f:
                return f.read()

        return await asyncio.to_thread(_read), guess_content_type(key)

    async def delete(self, url: str) -> bool:
        key = self._key_for_url(url)
        if key is None:
            return False
        path = os.path.join(self.root, key)
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            logger.debug(f"File {key} not found (already deleted)")
        return True

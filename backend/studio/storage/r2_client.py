"""
Cloudflare R2 / S3-compatible image store.

Uses boto3 with S3-compatible API to interact with Cloudflare R2.
This is storage-provider agnostic - works with any S3-compatible storage.
Objects are written with their content type and exposed through the public
URL bound to the bucket (R2_PUBLIC_URL).
"""
import asyncio
import logging
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from studio.config import settings
from studio.storage.base import ImageStore, generate_object_key

logger = logging.getLogger(__name__)


class R2ImageStore(ImageStore):
    """
    S3-compatible image store for Cloudflare R2.
    """

    def __init__(self):
        """
        Initialize R2 client with boto3.

        Raises:
            ValueError: If R2 is not configured
        """
        if not all([
            settings.r2_endpoint,
            settings.r2_access_key,
            settings.r2_secret_key,
            settings.r2_public_url,
        ]):
            raise ValueError(
                "R2 storage not configured. "
                "Set R2_ENDPOINT, R2_ACCESS_KEY, R2_SECRET_KEY and R2_PUBLIC_URL."
            )

        # Use signature_version='s3v4' for R2 compatibility
        self._client = boto3.client(
            's3',
            endpoint_url=settings.r2_endpoint,
            aws_access_key_id=settings.r2_access_key,
            aws_secret_access_key=settings.r2_secret_key,
            region_name=settings.r2_region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}  # R2 uses path-style
            )
        )
        self.bucket = settings.r2_bucket
        self.public_url = settings.r2_public_url.rstrip("/")
        logger.info(f"R2 client initialized for bucket: {self.bucket}")

    def _key_for_url(self, url: str) -> Optional[str]:
        prefix = self.public_url + "/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):]

    async def save(self, data: bytes, content_type: str, folder: str) -> str:
        key = generate_object_key(folder, content_type)
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.debug(f"Uploaded {len(data)} bytes to R2 at {key}")
        return f"{self.public_url}/{key}"

    async def read(self, url: str) -> Optional[Tuple[bytes, str]]:
        key = self._key_for_url(url)
        if key is None:
            return None
        try:
            response = await asyncio.to_thread(self._client.get_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchKey'):
                return None
            raise
        body = await asyncio.to_thread(response['Body'].read)
        return body, response.get('ContentType') or 'image/png'

    async def delete(self, url: str) -> bool:
        key = self._key_for_url(url)
        if key is None:
            return False
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            # If object doesn't exist, consider it a success (idempotent)
            if e.response['Error']['Code'] == '404':
                logger.debug(f"Object {key} not found in R2 (already deleted)")
                return True
            raise
        logger.debug(f"Deleted object {key} from R2")
        return True

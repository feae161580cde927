"""
Cloudflare R2 storage provider.

R2 is S3-compatible, so boto3 is used for the client. boto3 is synchronous;
calls run in the default executor.
"""

import asyncio
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import StorageError

from .base import StorageProvider, StoredImage, build_key

logger = logging.getLogger(__name__)


class R2StorageProvider(StorageProvider):
    """Cloudflare R2 storage provider."""

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
        public_url: str | None = None,
    ):
        self.account_id = account_id
        self.bucket_name = bucket_name
        self.public_url = public_url

        endpoint_url = f"https://{account_id}.r2.cloudflarestorage.com"
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )
        logger.info(f"R2 client initialized for bucket: {bucket_name}")

    @property
    def name(self) -> str:
        return "r2"

    async def upload(
        self,
        data: bytes,
        folder: str,
        content_type: str = "image/png",
    ) -> StoredImage:
        """Upload the image with a put_object call."""
        key = build_key(folder, content_type)

        def put():
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, put)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key} to R2: {e}") from e

        logger.debug(f"Uploaded to R2: {key}")
        return StoredImage(
            key=key,
            url=self.get_public_url(key),
            size=len(data),
            content_type=content_type,
        )

    async def delete(self, key: str) -> bool:
        """Delete an object from the bucket."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self._client.delete_object(Bucket=self.bucket_name, Key=key),
            )
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete {key} from R2: {e}")
            return False

    def get_public_url(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        return f"https://{self.bucket_name}.{self.account_id}.r2.cloudflarestorage.com/{key}"

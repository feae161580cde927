"""
Local file system storage provider.

This provider stores files on the local file system.
Suitable for development and single-server deployments.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from core.exceptions import StorageError

from .base import StorageProvider, StoredImage, build_key

logger = logging.getLogger(__name__)

# Route that serves local files when no public URL is configured
LOCAL_SERVE_PREFIX = "/api/images"


class LocalStorageProvider(StorageProvider):
    """Local file system storage provider."""

    def __init__(self, base_path: str, public_url: str | None = None):
        """
        Initialize local storage provider.

        Args:
            base_path: Directory that holds uploaded files
            public_url: Optional URL prefix the directory is served under;
                without one, files are served by the /api/images route
        """
        self.base_path = Path(base_path)
        self._public_url = public_url

    @property
    def name(self) -> str:
        """Backend name."""
        return "local"

    def _get_full_path(self, key: str) -> Path:
        """Get full file path for a key."""
        return self.base_path / key

    async def upload(
        self,
        data: bytes,
        folder: str,
        content_type: str = "image/png",
    ) -> StoredImage:
        """Write the image under base_path/folder."""
        key = build_key(folder, content_type)
        file_path = self._get_full_path(key)

        try:
            await aiofiles.os.makedirs(file_path.parent, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

        logger.debug(f"Saved file to local storage: {key}")

        return StoredImage(
            key=key,
            url=self.get_public_url(key),
            size=len(data),
            content_type=content_type,
        )

    async def delete(self, key: str) -> bool:
        """
        Delete file from local storage.

        Args:
            key: Storage key/path

        Returns:
            True if deleted successfully
        """
        file_path = self._get_full_path(key)

        if not file_path.exists():
            return False

        try:
            await aiofiles.os.remove(file_path)
            logger.debug(f"Deleted file from local storage: {key}")
            return True
        except OSError as e:
            logger.error(f"Failed to delete file {key}: {e}")
            return False

    async def load(self, key: str) -> bytes | None:
        """
        Read a stored file.

        Returns:
            File bytes, or None if the key is missing or outside base_path
        """
        base = self.base_path.resolve()
        file_path = self._get_full_path(key).resolve()
        if not file_path.is_relative_to(base) or not file_path.is_file():
            return None

        try:
            async with aiofiles.open(file_path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error(f"Failed to read file {key}: {e}")
            return None

    def get_public_url(self, key: str) -> str:
        """
        Get public URL for a key.

        Returns:
            Public URL if configured, otherwise the image-serving route path
        """
        if self._public_url:
            return f"{self._public_url.rstrip('/')}/{key}"
        return f"{LOCAL_SERVE_PREFIX}/{key}"

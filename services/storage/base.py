"""
Storage provider abstract base class and data types.

This module defines the interface that all durable image storage backends
must implement.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

CONTENT_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


@dataclass
class StoredImage:
    """Result of an upload."""

    key: str  # Storage path/key, used for deletion
    url: str  # Public access URL
    size: int = 0  # Size in bytes
    content_type: str = "image/png"


def build_key(folder: str, content_type: str = "image/png") -> str:
    """Generate a unique object key under a folder, e.g. generations/<id>/<uuid>.png."""
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type, "png")
    return f"{folder.strip('/')}/{uuid.uuid4().hex}.{extension}"


class StorageProvider(ABC):
    """
    Abstract base class for storage backends.

    All storage providers must implement this interface.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name: local, r2."""
        pass

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        folder: str,
        content_type: str = "image/png",
    ) -> StoredImage:
        """
        Upload an image.

        Args:
            data: Encoded image bytes
            folder: Folder prefix, e.g. generations/<user id>
            content_type: MIME type

        Returns:
            StoredImage with key and public URL

        Raises:
            StorageError: If the upload fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete an image.

        Args:
            key: Storage key/path

        Returns:
            True if deleted successfully
        """
        pass

    @abstractmethod
    def get_public_url(self, key: str) -> str:
        """Get public access URL for a key."""
        pass

"""
Pluggable durable storage for generated images.

Supports two backends:
- Local file system (development)
- Cloudflare R2 (S3-compatible, production)

Usage:
    from services.storage import create_storage

    storage = create_storage(settings)  # None when no backend is configured
    if storage:
        stored = await storage.upload(data, folder=f"generations/{user_id}")
"""

import logging

from core.config import Settings

from .base import StorageProvider, StoredImage, build_key
from .local import LocalStorageProvider
from .r2 import R2StorageProvider

logger = logging.getLogger(__name__)


def create_storage(settings: Settings) -> StorageProvider | None:
    """
    Build the storage backend selected in settings.

    Returns:
        A StorageProvider, or None when storage is disabled or incomplete
    """
    backend = settings.storage_backend.lower()

    if backend == "local":
        return LocalStorageProvider(
            base_path=settings.storage_local_path,
            public_url=settings.storage_public_url,
        )

    if backend == "r2":
        if not settings.is_r2_configured:
            logger.warning("STORAGE_BACKEND=r2 but R2 credentials are incomplete; storage disabled")
            return None
        return R2StorageProvider(
            account_id=settings.r2_account_id,
            access_key_id=settings.r2_access_key_id,
            secret_access_key=settings.r2_secret_access_key,
            bucket_name=settings.r2_bucket_name,
            public_url=settings.r2_public_url,
        )

    if backend != "none":
        logger.warning(f"Unknown storage backend '{settings.storage_backend}'; storage disabled")
    return None


__all__ = [
    # Core classes
    "StorageProvider",
    "StoredImage",
    "build_key",
    # Providers
    "LocalStorageProvider",
    "R2StorageProvider",
    # Factory
    "create_storage",
]

"""
Image serving router.

Serves images written by the local storage backend when it has no public
URL configured.
"""

import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from api.dependencies import ServiceContainer, get_services
from core.exceptions import NotFoundError
from services.storage import LocalStorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])

EXTENSION_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


@router.get("/{path:path}")
async def serve_image(
    path: str,
    services: ServiceContainer = Depends(get_services),
):
    """
    Serve a locally stored image.

    The path is the storage key, e.g. generations/<user id>/<hex>.png.
    """
    storage = services.storage
    data = None
    if isinstance(storage, LocalStorageProvider):
        data = await storage.load(path)

    if not data:
        logger.debug(f"Image not found: {path}")
        raise NotFoundError("Image not found")

    name = PurePosixPath(path)
    content_type = EXTENSION_CONTENT_TYPES.get(name.suffix.lower(), "image/png")
    filename = name.name

    return Response(
        content=data,
        media_type=content_type,
        headers={
            "Cache-Control": "public, max-age=86400",
            "Content-Disposition": f'inline; filename="{filename}"',
        },
    )

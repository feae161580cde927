"""
Image generation router.

Endpoints:
- POST /api/generate - Generate an image from a prompt
- POST /api/generate/edit - Edit an existing image
- POST /api/generate/segment - Segmentation masks for an image
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_generation_service
from api.schemas.generate import (
    EditImageRequest,
    GenerateImageRequest,
    GenerateImageResponse,
    QuotaSnapshot,
    SegmentationMaskSchema,
    SegmentImageRequest,
    SegmentImageResponse,
)
from core.auth import AppUser, require_current_user
from services.generation_service import GenerationOutcome, GenerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generation"])


def to_response(outcome: GenerationOutcome) -> GenerateImageResponse:
    return GenerateImageResponse(
        generation_id=outcome.generation_id,
        images=outcome.images,
        image_url=outcome.image_url,
        credential_source=outcome.credential_source.value,
        quota=QuotaSnapshot(
            used=outcome.quota.used,
            limit=outcome.quota.limit,
            remaining=outcome.quota.remaining,
        ),
        duration=round(outcome.duration, 3),
    )


@router.post("", response_model=GenerateImageResponse)
async def generate_image(
    request: GenerateImageRequest,
    user: AppUser = Depends(require_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """
    Generate an image from a text prompt.

    Free-tier users are limited per day; users with their own key are not.
    """
    logger.info(
        f"Generate request from {user.id}: prompt={request.prompt[:100]!r}, "
        f"references={len(request.reference_images)}, "
        f"size={request.settings.width}x{request.settings.height}"
    )
    outcome = await service.generate(
        user,
        request.prompt,
        settings=request.settings.to_prompt_settings(),
        reference_images=request.reference_images,
        negative_prompt=request.negative_prompt,
    )
    return to_response(outcome)


@router.post("/edit", response_model=GenerateImageResponse)
async def edit_image(
    request: EditImageRequest,
    user: AppUser = Depends(require_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Edit an image, optionally restricted to a mask."""
    logger.info(
        f"Edit request from {user.id}: instruction={request.instruction[:100]!r}, "
        f"mask={'yes' if request.mask_image else 'no'}"
    )
    outcome = await service.edit(
        user,
        request.original_image,
        request.instruction,
        settings=request.settings.to_prompt_settings(),
        mask_image=request.mask_image,
        reference_images=request.reference_images,
    )
    return to_response(outcome)


@router.post("/segment", response_model=SegmentImageResponse)
async def segment_image(
    request: SegmentImageRequest,
    user: AppUser = Depends(require_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Ask the model for segmentation masks matching a query."""
    result = await service.segment(user, request.image, request.query)
    return SegmentImageResponse(
        masks=[
            SegmentationMaskSchema(label=m.label, box_2d=m.box_2d, mask=m.mask)
            for m in result.masks
        ]
    )

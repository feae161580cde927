"""
History router for generation records.

Endpoints:
- GET /api/history - List the caller's generations, newest first
- GET /api/history/{generation_id} - Get one generation
- DELETE /api/history/{generation_id} - Delete a generation and its stored image
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_generation_service
from api.schemas.history import (
    DeleteGenerationResponse,
    GenerationDetailResponse,
    GenerationItem,
    HistoryListResponse,
)
from core.auth import AppUser, require_current_user
from services.generation_service import GenerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=HistoryListResponse)
async def list_history(
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    offset: int = Query(0, ge=0, description="Items to skip"),
    user: AppUser = Depends(require_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """
    List generation history.

    Inline image data is only returned for records without a URL.
    """
    page = await service.list_history(user.id, limit=limit, offset=offset)
    return HistoryListResponse(
        generations=[GenerationItem.from_generation(g) for g in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.get("/{generation_id}", response_model=GenerationDetailResponse)
async def get_generation(
    generation_id: UUID,
    user: AppUser = Depends(require_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    generation = await service.get_generation(user.id, generation_id)
    return GenerationDetailResponse(generation=GenerationItem.from_generation(generation))


@router.delete("/{generation_id}", response_model=DeleteGenerationResponse)
async def delete_generation(
    generation_id: UUID,
    user: AppUser = Depends(require_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    await service.delete_generation(user.id, generation_id)
    return DeleteGenerationResponse(deleted_id=generation_id)

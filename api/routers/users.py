"""
User router.

Endpoints:
- PUT /api/users/me - Create or update the caller from gateway identity
- GET /api/users/me - Get the caller
- PUT /api/users/me/api-key - Set or remove the caller's own Gemini key
- GET /api/users/me/stats - Generation statistics
- DELETE /api/users/me - Delete the caller and their history
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_user_service
from api.schemas.common import MessageResponse
from api.schemas.users import (
    UpdateApiKeyRequest,
    UpdateApiKeyResponse,
    UserDetailResponse,
    UserResponse,
    UserStatsResponse,
    UserSyncResponse,
)
from core.auth import AppUser, require_current_user
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/me", response_model=UserSyncResponse)
async def sync_current_user(
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    """Create or update the caller's record from X-User-* headers."""
    record, created = await service.sync_user(user)
    return UserSyncResponse(created=created, user=UserResponse.model_validate(record))


@router.get("/me", response_model=UserDetailResponse)
async def get_current_user_record(
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    record = await service.get_user(user.id)
    return UserDetailResponse(user=UserResponse.model_validate(record))


@router.put("/me/api-key", response_model=UpdateApiKeyResponse)
async def update_api_key(
    request: UpdateApiKeyRequest,
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    """Store the caller's own key, or remove it when the value is empty."""
    record = await service.update_api_key(user.id, request.api_key)
    message = (
        "API key updated successfully" if record.has_own_credential else "API key removed successfully"
    )
    return UpdateApiKeyResponse(message=message, has_api_key=record.has_own_credential)


@router.get("/me/stats", response_model=UserStatsResponse)
async def get_user_stats(
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    stats = await service.get_stats(user.id)
    return UserStatsResponse(
        total_generations=stats.total_generations,
        today_generations=stats.today_generations,
        daily_limit=stats.daily_limit,
        remaining_today=stats.remaining_today,
        has_api_key=stats.has_api_key,
        last_generation_at=stats.last_generation_at,
    )


@router.delete("/me", response_model=MessageResponse)
async def delete_current_user(
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.delete_user(user.id)
    return MessageResponse(message="User deleted successfully")

"""
Quota router.

Endpoints:
- GET /api/quota/can-generate - Whether the caller may generate now
- GET /api/quota/today - Today's free-tier usage
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_user_service
from api.schemas.quota import CanGenerateResponse, TodayUsageResponse
from core.auth import AppUser, require_current_user
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quota", tags=["quota"])


@router.get("/can-generate", response_model=CanGenerateResponse)
async def can_generate(
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    """
    Check whether the caller may start a generation.

    A stored key that can no longer be used is removed here, so the answer
    reflects the free tier from then on.
    """
    eligibility = await service.can_generate(user.id)
    logger.info(f"can-generate for {user.id}: allowed={eligibility.allowed}")
    return CanGenerateResponse(
        allowed=eligibility.allowed,
        has_api_key=eligibility.has_api_key,
        today_generations=eligibility.today_generations,
        remaining_today=eligibility.remaining_today,
        message=eligibility.message,
    )


@router.get("/today", response_model=TodayUsageResponse)
async def get_today_usage(
    user: AppUser = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
):
    stats = await service.get_stats(user.id)
    return TodayUsageResponse(
        count=stats.today_generations,
        limit=stats.daily_limit,
        remaining=stats.remaining_today,
    )

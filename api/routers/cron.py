"""
Scheduled job router.

Endpoints:
- POST /api/cron/reset-daily-limits - Run the daily reset now
- GET /api/cron/status - Scheduler configuration

Both require the X-Cron-Secret header when CRON_SECRET is set.
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_quota_service, verify_cron_secret
from api.schemas.quota import CronResetResponse, CronStatusResponse
from api.workers import run_daily_reset
from core.config import Settings, get_settings
from services.quota_service import QuotaService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_secret)],
)


@router.post("/reset-daily-limits", response_model=CronResetResponse)
async def trigger_daily_reset(quota: QuotaService = Depends(get_quota_service)):
    """Manually reset free-tier daily limits."""
    logger.info("[CRON] Manual daily reset triggered")
    updated = await run_daily_reset(quota)
    return CronResetResponse(message="Daily limits reset successfully", users_reset=updated)


@router.get("/status", response_model=CronStatusResponse)
async def cron_status(settings: Settings = Depends(get_settings)):
    return CronStatusResponse(
        timezone=settings.quota_timezone,
        daily_limit=settings.free_tier_daily_limit,
        jobs={
            "reset_daily_limits": "daily at 00:00",
            "cleanup_generations": "Sundays at 02:00",
        },
    )

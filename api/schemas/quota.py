"""
Quota-related Pydantic schemas.
"""

from pydantic import BaseModel, Field


class CanGenerateResponse(BaseModel):
    """Whether the caller may start a generation now."""

    success: bool = True
    allowed: bool = Field(..., description="Whether a generation may start")
    has_api_key: bool = Field(..., description="Whether the user's own key is in use")
    today_generations: int = Field(..., description="Free-tier generations today")
    remaining_today: int = Field(..., description="-1 means unlimited")
    message: str


class TodayUsageResponse(BaseModel):
    """Today's free-tier usage."""

    success: bool = True
    count: int
    limit: int = Field(..., description="-1 means unlimited")
    remaining: int = Field(..., description="-1 means unlimited")


class CronStatusResponse(BaseModel):
    """Scheduler configuration."""

    success: bool = True
    timezone: str
    daily_limit: int
    jobs: dict[str, str]


class CronResetResponse(BaseModel):
    success: bool = True
    message: str
    users_reset: int

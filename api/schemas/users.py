"""
User-related Pydantic schemas.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Public view of a user. Never includes the stored key."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    auth_id: str
    email: str
    name: str | None = None
    picture: str | None = None
    has_api_key: bool = Field(..., validation_alias="has_own_credential")
    generation_count: int
    created_at: datetime


class UserSyncResponse(BaseModel):
    success: bool = True
    created: bool
    user: UserResponse


class UserDetailResponse(BaseModel):
    success: bool = True
    user: UserResponse


class UpdateApiKeyRequest(BaseModel):
    """An empty or missing key removes the stored key."""

    api_key: str | None = Field(None, max_length=512, description="Gemini API key")


class UpdateApiKeyResponse(BaseModel):
    success: bool = True
    message: str
    has_api_key: bool


class UserStatsResponse(BaseModel):
    success: bool = True
    total_generations: int
    today_generations: int
    daily_limit: int = Field(..., description="-1 for users with their own key")
    remaining_today: int = Field(..., description="-1 for users with their own key")
    has_api_key: bool
    last_generation_at: datetime | None = None

"""
Pydantic schemas for API request/response models.
"""

from .common import (
    ComponentHealth,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    HealthStatus,
    MessageResponse,
)
from .generate import (
    EditImageRequest,
    GenerateImageRequest,
    GenerateImageResponse,
    GenerationSettings,
    QuotaSnapshot,
    SegmentationMaskSchema,
    SegmentImageRequest,
    SegmentImageResponse,
)
from .history import (
    DeleteGenerationResponse,
    GenerationDetailResponse,
    GenerationItem,
    HistoryListResponse,
)
from .quota import (
    CanGenerateResponse,
    CronResetResponse,
    CronStatusResponse,
    TodayUsageResponse,
)
from .users import (
    UpdateApiKeyRequest,
    UpdateApiKeyResponse,
    UserDetailResponse,
    UserResponse,
    UserStatsResponse,
    UserSyncResponse,
)

__all__ = [
    # Common
    "ComponentHealth",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "HealthStatus",
    "MessageResponse",
    # Generate
    "EditImageRequest",
    "GenerateImageRequest",
    "GenerateImageResponse",
    "GenerationSettings",
    "QuotaSnapshot",
    "SegmentationMaskSchema",
    "SegmentImageRequest",
    "SegmentImageResponse",
    # History
    "DeleteGenerationResponse",
    "GenerationDetailResponse",
    "GenerationItem",
    "HistoryListResponse",
    # Quota / cron
    "CanGenerateResponse",
    "CronResetResponse",
    "CronStatusResponse",
    "TodayUsageResponse",
    # Users
    "UpdateApiKeyRequest",
    "UpdateApiKeyResponse",
    "UserDetailResponse",
    "UserResponse",
    "UserStatsResponse",
    "UserSyncResponse",
]

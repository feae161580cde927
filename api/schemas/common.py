"""
Common Pydantic schemas used across the API.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error detail for API responses."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )


class ErrorResponse(BaseModel):
    """Body of every error response."""

    success: bool = Field(default=False)
    error: ErrorDetail


class MessageResponse(BaseModel):
    """Simple acknowledgement."""

    success: bool = Field(default=True)
    message: str


class HealthStatus(str, Enum):
    """Health check status enum."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    status: HealthStatus
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Response of the health endpoint."""

    status: HealthStatus
    version: str
    environment: str
    components: Dict[str, ComponentHealth] = Field(default_factory=dict)

"""
Generation history Pydantic schemas.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from database.models import Generation


class GenerationItem(BaseModel):
    """A history entry. Inline data is only included when there is no URL."""

    id: UUID
    prompt: str
    negative_prompt: str | None = None
    edit_instruction: str | None = None
    is_edit: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)
    status: str
    image_url: str | None = None
    image_data: str | None = None
    has_image_url: bool = False
    has_image_data: bool = False
    model: str | None = None
    credential_source: str | None = None
    generation_duration_ms: int | None = None
    created_at: datetime

    @classmethod
    def from_generation(cls, generation: Generation) -> "GenerationItem":
        return cls(
            id=generation.id,
            prompt=generation.prompt,
            negative_prompt=generation.negative_prompt,
            edit_instruction=generation.edit_instruction,
            is_edit=generation.is_edit,
            settings=generation.settings or {},
            status=generation.status,
            image_url=generation.image_url or None,
            image_data=None if generation.image_url else (generation.image_data or None),
            has_image_url=bool(generation.image_url),
            has_image_data=bool(generation.image_data),
            model=generation.model,
            credential_source=generation.credential_source,
            generation_duration_ms=generation.generation_duration_ms,
            created_at=generation.created_at,
        )


class HistoryListResponse(BaseModel):
    success: bool = True
    generations: list[GenerationItem]
    total: int
    limit: int
    offset: int
    has_more: bool


class GenerationDetailResponse(BaseModel):
    success: bool = True
    generation: GenerationItem


class DeleteGenerationResponse(BaseModel):
    success: bool = True
    message: str = "Generation deleted successfully"
    deleted_id: UUID

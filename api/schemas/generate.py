"""
Image generation-related Pydantic schemas.
"""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from services.prompt_builder import PromptSettings


class GenerationSettings(BaseModel):
    """Settings that shape the prompt and the post-processing."""

    temperature: float | None = Field(None, ge=0.0, le=2.0, description="Creativity, 0-2")
    seed: int | None = Field(None, description="Style consistency hint")
    width: int | None = Field(None, ge=64, le=2048, description="Target width in pixels")
    height: int | None = Field(None, ge=64, le=2048, description="Target height in pixels")

    def to_prompt_settings(self) -> PromptSettings:
        return PromptSettings(
            temperature=self.temperature,
            seed=self.seed,
            width=self.width,
            height=self.height,
        )


class GenerateImageRequest(BaseModel):
    """Request for text-to-image generation."""

    prompt: str = Field(..., min_length=1, max_length=5000, description="Image generation prompt")
    negative_prompt: str | None = Field(None, max_length=5000, description="Stored with the record")
    settings: GenerationSettings = Field(
        default_factory=GenerationSettings, description="Generation settings"
    )
    reference_images: list[str] = Field(
        default_factory=list,
        description="Base64 images or data URLs",
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Validate and clean prompt."""
        v = v.strip()
        if not v:
            raise ValueError("Prompt cannot be empty")
        return v


class EditImageRequest(BaseModel):
    """Request for editing an existing image."""

    instruction: str = Field(..., min_length=1, max_length=5000, description="Edit instruction")
    original_image: str = Field(..., min_length=1, description="Base64 image or data URL")
    mask_image: str | None = Field(None, description="Binary mask, white marks the edit area")
    reference_images: list[str] = Field(default_factory=list)
    settings: GenerationSettings = Field(default_factory=GenerationSettings)

    @field_validator("instruction")
    @classmethod
    def validate_instruction(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Instruction cannot be empty")
        return v


class SegmentImageRequest(BaseModel):
    """Request for segmentation masks."""

    image: str = Field(..., min_length=1, description="Base64 image or data URL")
    query: str = Field(..., min_length=1, max_length=500, description="What to segment")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Query cannot be empty")
        return v


class QuotaSnapshot(BaseModel):
    """Quota state after a request."""

    used: int
    limit: int = Field(..., description="-1 means unlimited")
    remaining: int = Field(..., description="-1 means unlimited")


class GenerateImageResponse(BaseModel):
    """Response for generate and edit."""

    success: bool = True
    generation_id: UUID
    images: list[str] = Field(..., description="Post-processed images, base64 PNG/JPEG")
    image_url: str | None = Field(None, description="Durable URL of the first image")
    credential_source: str = Field(..., description="'own' or 'shared'")
    quota: QuotaSnapshot
    duration: float = Field(..., description="Generation time in seconds")


class SegmentationMaskSchema(BaseModel):
    label: str
    box_2d: list[float]
    mask: str


class SegmentImageResponse(BaseModel):
    success: bool = True
    masks: list[SegmentationMaskSchema]

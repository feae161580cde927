"""
Generation model for storing image generation history.
"""

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .user import User


class GenerationStatus(StrEnum):
    """Lifecycle status of a generation record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Generation(Base):
    """
    A single provider round trip and its resulting image.

    Exactly one of image_url / image_data is authoritative: image_url when the
    upload to durable storage succeeded, inline base64 otherwise.
    """

    __tablename__ = "generations"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Owner
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    auth_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    # Inputs
    prompt: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    negative_prompt: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    edit_instruction: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    mask_data: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )

    # Result
    image_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    storage_key: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    image_data: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Metadata
    is_edit: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=GenerationStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    model: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    credential_source: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    generation_duration_ms: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="generations",
    )

    def __repr__(self) -> str:
        return f"<Generation(id={self.id}, edit={self.is_edit}, prompt={self.prompt[:30]}...)>"

    @property
    def duration(self) -> float | None:
        """Get duration in seconds."""
        if self.generation_duration_ms is not None:
            return self.generation_duration_ms / 1000.0
        return None


# Indexes for common queries
Index("idx_generations_user_created", Generation.user_id, Generation.created_at.desc())
Index("idx_generations_auth_created", Generation.auth_id, Generation.created_at.desc())

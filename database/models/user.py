"""
User model holding identity, the optional own credential and quota counters.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .generation import Generation


class User(Base, TimestampMixin):
    """
    User model representing accounts known to the gateway.

    Users are created on first sync or first generation. The encrypted key and
    its flag are only changed through the credential resolver, never by
    assignment hooks on the model.
    """

    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Identity from the auth gateway
    auth_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    picture: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Own provider credential (Fernet token)
    encrypted_api_key: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    has_own_credential: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )

    # Usage counters
    generation_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    daily_generation_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    last_generation_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    generations: Mapped[list["Generation"]] = relationship(
        "Generation",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, auth_id={self.auth_id}, own_key={self.has_own_credential})>"


# Indexes
Index("idx_users_created_at", User.created_at.desc())

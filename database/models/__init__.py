"""
SQLAlchemy models for Codenex Studio.
"""

from .base import Base, TimestampMixin
from .generation import Generation, GenerationStatus
from .user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Models
    "User",
    "Generation",
    "GenerationStatus",
]

"""
Repository layer for database access.

Provides async CRUD operations for all models.
"""

from .generation_repo import GenerationRepository
from .user_repo import UserRepository

__all__ = [
    "UserRepository",
    "GenerationRepository",
]

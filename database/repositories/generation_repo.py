"""
Generation repository for generation history operations.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Generation, GenerationStatus


class GenerationRepository:
    """Repository for Generation model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: UUID,
        auth_id: str,
        prompt: str,
        settings: dict[str, Any],
        image_url: str | None = None,
        storage_key: str | None = None,
        image_data: str | None = None,
        is_edit: bool = False,
        edit_instruction: str | None = None,
        negative_prompt: str | None = None,
        mask_data: str | None = None,
        model: str | None = None,
        credential_source: str | None = None,
        duration: float | None = None,
        status: GenerationStatus = GenerationStatus.COMPLETED,
    ) -> Generation:
        """Create a completed generation record."""
        generation = Generation(
            user_id=user_id,
            auth_id=auth_id,
            prompt=prompt,
            negative_prompt=negative_prompt,
            edit_instruction=edit_instruction,
            mask_data=mask_data,
            settings=settings,
            image_url=image_url,
            storage_key=storage_key,
            image_data=image_data,
            is_edit=is_edit,
            status=status.value,
            model=model,
            credential_source=credential_source,
            generation_duration_ms=int(duration * 1000) if duration is not None else None,
        )
        self.session.add(generation)
        await self.session.flush()
        return generation

    async def get_for_user(self, generation_id: UUID, user_id: UUID) -> Generation | None:
        """Get a generation only if it belongs to the given user."""
        result = await self.session.execute(
            select(Generation).where(
                and_(Generation.id == generation_id, Generation.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: UUID,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Generation]:
        """List a user's generations, newest first."""
        result = await self.session.execute(
            select(Generation)
            .where(Generation.user_id == user_id)
            .order_by(Generation.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Generation).where(Generation.user_id == user_id)
        )
        return result.scalar_one()

    async def count_since(self, since: datetime, is_edit: bool | None = None) -> int:
        """Count generations created at or after `since`."""
        query = select(func.count()).select_from(Generation).where(Generation.created_at >= since)
        if is_edit is not None:
            query = query.where(Generation.is_edit.is_(is_edit))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def delete(self, generation: Generation) -> None:
        await self.session.delete(generation)
        await self.session.flush()

    async def delete_failed_before(self, cutoff: datetime) -> int:
        """Delete failed generations older than the cutoff."""
        result = await self.session.execute(
            delete(Generation).where(
                and_(
                    Generation.status == GenerationStatus.FAILED.value,
                    Generation.created_at < cutoff,
                )
            )
        )
        return result.rowcount or 0

    async def delete_orphaned_before(self, cutoff: datetime) -> int:
        """Delete generations with no image reference older than the cutoff."""
        result = await self.session.execute(
            delete(Generation).where(
                and_(
                    or_(Generation.image_url.is_(None), Generation.image_url == ""),
                    or_(Generation.image_data.is_(None), Generation.image_data == ""),
                    Generation.created_at < cutoff,
                )
            )
        )
        return result.rowcount or 0

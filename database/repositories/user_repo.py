"""
User repository for user CRUD operations and bulk quota updates.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Generation, User


class UserRepository:
    """Repository for User model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_auth_id(self, auth_id: str) -> User | None:
        """Get user by external subject id."""
        result = await self.session.execute(select(User).where(User.auth_id == auth_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email."""
        result = await self.session.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def create(
        self,
        auth_id: str,
        email: str,
        name: str | None = None,
        picture: str | None = None,
    ) -> User:
        """Create a new user."""
        user = User(
            auth_id=auth_id,
            email=email.lower(),
            name=name,
            picture=picture,
            has_own_credential=False,
            generation_count=0,
            daily_generation_count=0,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def create_or_update(
        self,
        auth_id: str,
        email: str,
        name: str | None = None,
        picture: str | None = None,
    ) -> tuple[User, bool]:
        """
        Create or update a user from gateway identity data.

        Returns:
            Tuple of (user, created)
        """
        user = await self.get_by_auth_id(auth_id)

        if user:
            user.email = email.lower()
            user.name = name
            user.picture = picture
            await self.session.flush()
            return user, False

        user = await self.create(auth_id=auth_id, email=email, name=name, picture=picture)
        return user, True

    async def save(self, user: User) -> User:
        """Flush pending changes on a user."""
        self.session.add(user)
        await self.session.flush()
        return user

    async def reset_daily_counts(self) -> int:
        """
        Zero the daily counter of every user without an own credential.

        Returns:
            Number of rows matched by the update
        """
        stmt = (
            update(User)
            .where(User.has_own_credential.is_(False))
            .values(daily_generation_count=0, last_generation_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def count_all(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(User))
        return result.scalar_one()

    async def count_with_credential(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(User).where(User.has_own_credential.is_(True))
        )
        return result.scalar_one()

    async def count_active_since(self, since: datetime) -> int:
        """Count users whose last shared-tier generation is at or after `since`."""
        result = await self.session.execute(
            select(func.count())
            .select_from(User)
            .where(User.daily_generation_count > 0, User.last_generation_at >= since)
        )
        return result.scalar_one()

    async def delete_by_auth_id(self, auth_id: str) -> bool:
        """Delete a user and all of its generation records."""
        user = await self.get_by_auth_id(auth_id)
        if not user:
            return False

        await self.session.execute(delete(Generation).where(Generation.user_id == user.id))
        await self.session.delete(user)
        await self.session.flush()
        return True

"""
User account operations: sync from the gateway, own API key, stats.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from core.auth import AppUser
from core.exceptions import UserNotFoundError, ValidationError
from database import Database
from database.models import User
from database.repositories import UserRepository

from .credentials import CredentialResolver, CredentialStatus
from .quota_service import QuotaService

logger = logging.getLogger(__name__)


@dataclass
class UserStats:
    total_generations: int
    today_generations: int
    daily_limit: int  # -1 for own-key users
    remaining_today: int  # -1 for own-key users
    has_api_key: bool
    last_generation_at: datetime | None


@dataclass
class GenerateEligibility:
    """Answer to "may this user start a generation now?"."""

    allowed: bool
    has_api_key: bool
    today_generations: int
    remaining_today: int  # -1 for own-key users
    message: str


class UserService:
    """Service for user records."""

    def __init__(
        self,
        database: Database,
        credentials: CredentialResolver,
        quota: QuotaService,
    ):
        self._database = database
        self._credentials = credentials
        self._quota = quota

    async def sync_user(self, identity: AppUser) -> tuple[User, bool]:
        """
        Create or update the user from gateway identity.

        Returns:
            Tuple of (user, created)

        Raises:
            ValidationError: Email missing or registered to another account
        """
        if not identity.email:
            raise ValidationError("Email is required", details={"field": "email"})

        async with self._database.session() as session:
            repo = UserRepository(session)
            owner = await repo.get_by_email(identity.email)
            if owner and owner.auth_id != identity.id:
                raise ValidationError(
                    "Email is already registered to another account",
                    details={"field": "email"},
                )

            user, created = await repo.create_or_update(
                auth_id=identity.id,
                email=identity.email,
                name=identity.name,
                picture=identity.picture,
            )

        logger.info(f"{'Created' if created else 'Updated'} user {identity.id}")
        return user, created

    async def get_user(self, subject_id: str) -> User:
        async with self._database.session() as session:
            user = await UserRepository(session).get_by_auth_id(subject_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def update_api_key(self, subject_id: str, api_key: str | None) -> User:
        """Set or (with an empty value) remove the user's own API key."""
        async with self._database.session() as session:
            repo = UserRepository(session)
            user = await repo.get_by_auth_id(subject_id)
            if not user:
                raise UserNotFoundError()

            self._credentials.assign(user, api_key)
            await repo.save(user)

        return user

    async def get_stats(self, subject_id: str) -> UserStats:
        user = await self.get_user(subject_id)
        decision = self._quota.check_allowed(user)
        today = 0 if user.has_own_credential else decision.used

        return UserStats(
            total_generations=user.generation_count,
            today_generations=today,
            daily_limit=decision.limit,
            remaining_today=decision.remaining,
            has_api_key=user.has_own_credential,
            last_generation_at=user.last_generation_at,
        )

    async def can_generate(self, subject_id: str) -> GenerateEligibility:
        """
        Check whether the user may generate right now.

        Unknown users get the full free allowance. A stored key that no longer
        decrypts is removed and the user falls back to the free tier.
        """
        async with self._database.session() as session:
            repo = UserRepository(session)
            user = await repo.get_by_auth_id(subject_id)

            if not user:
                limit = self._quota.daily_limit
                return GenerateEligibility(
                    allowed=True,
                    has_api_key=False,
                    today_generations=0,
                    remaining_today=limit,
                    message="New user, generation allowed",
                )

            status = self._credentials.credential_status(user)
            if status == CredentialStatus.CLEARED:
                await repo.save(user)

            decision = self._quota.check_allowed(user)

        if decision.unlimited:
            return GenerateEligibility(
                allowed=True,
                has_api_key=True,
                today_generations=0,
                remaining_today=-1,
                message="Using personal API key",
            )

        if decision.allowed:
            message = f"{decision.remaining} generations remaining today"
        else:
            message = "Daily generation limit exceeded. Please add your own API key to continue."

        return GenerateEligibility(
            allowed=decision.allowed,
            has_api_key=False,
            today_generations=decision.used,
            remaining_today=decision.remaining,
            message=message,
        )

    async def delete_user(self, subject_id: str) -> None:
        """Delete the user and every generation record it owns."""
        async with self._database.session() as session:
            deleted = await UserRepository(session).delete_by_auth_id(subject_id)
        if not deleted:
            raise UserNotFoundError()
        logger.info(f"Deleted user {subject_id}")

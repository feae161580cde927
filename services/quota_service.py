"""
Free-tier daily quota over the counters stored on each user.

A user is either FreshToday (last shared-tier generation falls on today's
date in the reference timezone) or StaleOrNone. The stored daily counter is
only meaningful when FreshToday; otherwise the effective count is 0. Users
with an own credential are never limited and never counted.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

from database import Database
from database.models import User
from database.repositories import GenerationRepository, UserRepository

from .credentials import CredentialSource

logger = logging.getLogger(__name__)


@dataclass
class QuotaDecision:
    """Result of a quota check."""

    allowed: bool
    used: int
    limit: int  # -1 means unlimited
    remaining: int  # -1 means unlimited

    @property
    def unlimited(self) -> bool:
        return self.limit < 0


class QuotaService:
    """
    Service for the per-user free-tier quota.

    Checks and increments operate on a loaded User and leave persistence to
    the caller. The bulk reset and statistics run against the database.
    """

    def __init__(
        self,
        database: Database | None = None,
        daily_limit: int = 2,
        timezone: str = "Asia/Kolkata",
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the quota service.

        Args:
            database: Database handle used by reset_all / usage_statistics
            daily_limit: Free-tier generations per day
            timezone: IANA name of the reference timezone for the day boundary
            clock: Returns the current aware datetime (injectable for tests)
        """
        self._database = database
        self.daily_limit = daily_limit
        self.tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(UTC))

    def now(self) -> datetime:
        return self._clock()

    def _local_date(self, value: datetime):
        # SQLite hands back naive datetimes; they are stored as UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(self.tz).date()

    def today(self):
        """Today's date in the reference timezone."""
        return self._local_date(self.now())

    def start_of_today(self) -> datetime:
        """The most recent day boundary, as an aware UTC datetime."""
        local_midnight = datetime.combine(self.today(), time.min, tzinfo=self.tz)
        return local_midnight.astimezone(UTC)

    def is_fresh_today(self, user: User) -> bool:
        """True when the user's last generation happened today."""
        if user.last_generation_at is None:
            return False
        return self._local_date(user.last_generation_at) == self.today()

    def effective_daily_count(self, user: User) -> int:
        """Today's generation count, treating a stale counter as 0."""
        if not self.is_fresh_today(user):
            return 0
        return user.daily_generation_count or 0

    def check_allowed(self, user: User) -> QuotaDecision:
        """
        Check whether the user may start another generation.

        Own-credential users are always allowed. Everyone else is allowed while
        today's effective count is below the daily limit.
        """
        if user.has_own_credential:
            return QuotaDecision(allowed=True, used=0, limit=-1, remaining=-1)

        used = self.effective_daily_count(user)
        return QuotaDecision(
            allowed=used < self.daily_limit,
            used=used,
            limit=self.daily_limit,
            remaining=max(0, self.daily_limit - used),
        )

    def record_generation(self, user: User, source: CredentialSource) -> None:
        """
        Update counters after a successful generation.

        The lifetime counter always increments. The daily counter only moves
        for shared-credential generations: it restarts at 1 on the first
        generation of a new day and increments otherwise.
        """
        user.generation_count = (user.generation_count or 0) + 1

        if source != CredentialSource.SHARED:
            return

        if self.is_fresh_today(user):
            user.daily_generation_count = (user.daily_generation_count or 0) + 1
        else:
            user.daily_generation_count = 1
        user.last_generation_at = self.now()

        logger.debug(
            f"Recorded shared generation: user={user.auth_id}, "
            f"daily={user.daily_generation_count}/{self.daily_limit}"
        )

    async def reset_all(self) -> int:
        """
        Zero daily counters for every user without an own credential.

        Idempotent: a second run on the same day only re-zeroes zeros.

        Returns:
            Number of users matched
        """
        if self._database is None:
            raise RuntimeError("QuotaService.reset_all requires a database")

        async with self._database.session() as session:
            updated = await UserRepository(session).reset_daily_counts()

        logger.info(f"Daily limits reset for {updated} free-tier users")
        return updated

    async def usage_statistics(self) -> dict:
        """Counts describing today's usage, for the reset job's log line."""
        if self._database is None:
            raise RuntimeError("QuotaService.usage_statistics requires a database")

        since = self.start_of_today()
        async with self._database.session() as session:
            users = UserRepository(session)
            generations = GenerationRepository(session)

            total_users = await users.count_all()
            users_with_key = await users.count_with_credential()
            active_today = await users.count_active_since(since)
            today_generations = await generations.count_since(since)
            today_edits = await generations.count_since(since, is_edit=True)

        return {
            "total_users": total_users,
            "users_with_api_key": users_with_key,
            "active_users_today": active_today,
            "today_generations": today_generations,
            "today_edits": today_edits,
        }

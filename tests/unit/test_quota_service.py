"""
Unit tests for the free-tier quota.
"""

from datetime import UTC, datetime, timedelta

import pytest

from database.models import User
from database.repositories import GenerationRepository, UserRepository
from services.credentials import CredentialSource
from services.quota_service import QuotaService
from tests.conftest import NOON_IST, FixedClock


def make_user(**overrides) -> User:
    values = dict(
        auth_id="auth0|quota",
        email="quota@example.com",
        has_own_credential=False,
        generation_count=0,
        daily_generation_count=0,
        last_generation_at=None,
    )
    values.update(overrides)
    return User(**values)


@pytest.fixture
def quota(clock) -> QuotaService:
    return QuotaService(daily_limit=2, timezone="Asia/Kolkata", clock=clock)


class TestDayBoundary:
    def test_today_uses_reference_timezone(self):
        # 20:00 UTC on the 14th is already the 15th in India
        clock = FixedClock(datetime(2025, 6, 14, 20, 0, tzinfo=UTC))
        quota = QuotaService(clock=clock)

        assert quota.today().isoformat() == "2025-06-15"

    def test_start_of_today_in_utc(self, quota):
        # Midnight IST is 18:30 UTC the previous day
        assert quota.start_of_today() == datetime(2025, 6, 14, 18, 30, tzinfo=UTC)

    def test_fresh_and_stale(self, quota):
        assert quota.is_fresh_today(make_user()) is False
        assert quota.is_fresh_today(make_user(last_generation_at=NOON_IST - timedelta(hours=3)))
        assert not quota.is_fresh_today(make_user(last_generation_at=NOON_IST - timedelta(days=1)))

    def test_naive_timestamp_read_as_utc(self, quota):
        naive = (NOON_IST - timedelta(hours=1)).replace(tzinfo=None)
        assert quota.is_fresh_today(make_user(last_generation_at=naive))

    def test_stale_counter_reads_as_zero(self, quota):
        user = make_user(daily_generation_count=2, last_generation_at=NOON_IST - timedelta(days=1))
        assert quota.effective_daily_count(user) == 0


class TestCheckAllowed:
    def test_new_user_allowed(self, quota):
        decision = quota.check_allowed(make_user())

        assert decision.allowed
        assert decision.used == 0
        assert decision.limit == 2
        assert decision.remaining == 2
        assert not decision.unlimited

    def test_yesterdays_limit_does_not_carry_over(self, quota):
        user = make_user(daily_generation_count=2, last_generation_at=NOON_IST - timedelta(days=1))

        decision = quota.check_allowed(user)

        assert decision.allowed
        assert decision.remaining == 2

    def test_blocked_at_limit(self, quota):
        user = make_user(daily_generation_count=2, last_generation_at=NOON_IST - timedelta(hours=1))

        decision = quota.check_allowed(user)

        assert not decision.allowed
        assert decision.used == 2
        assert decision.remaining == 0

    def test_own_credential_is_unlimited(self, quota):
        user = make_user(
            has_own_credential=True,
            daily_generation_count=50,
            last_generation_at=NOON_IST,
        )

        decision = quota.check_allowed(user)

        assert decision.allowed
        assert decision.unlimited
        assert decision.remaining == -1


class TestRecordGeneration:
    def test_first_shared_generation_of_the_day(self, quota):
        user = make_user(
            generation_count=5,
            daily_generation_count=2,
            last_generation_at=NOON_IST - timedelta(days=1),
        )

        quota.record_generation(user, CredentialSource.SHARED)

        assert user.daily_generation_count == 1
        assert user.generation_count == 6
        assert user.last_generation_at == NOON_IST
        assert quota.check_allowed(user).allowed

    def test_limit_reached_after_two(self, quota, clock):
        user = make_user()

        quota.record_generation(user, CredentialSource.SHARED)
        clock.advance(minutes=5)
        quota.record_generation(user, CredentialSource.SHARED)

        assert user.daily_generation_count == 2
        assert not quota.check_allowed(user).allowed

    def test_new_day_restores_quota(self, quota, clock):
        user = make_user()
        quota.record_generation(user, CredentialSource.SHARED)
        quota.record_generation(user, CredentialSource.SHARED)

        # 18:30 UTC is midnight in India
        clock.advance(hours=12)

        assert quota.check_allowed(user).remaining == 2

    def test_own_credential_only_counts_lifetime(self, quota):
        user = make_user(has_own_credential=True, generation_count=3)

        quota.record_generation(user, CredentialSource.OWN)

        assert user.generation_count == 4
        assert user.daily_generation_count == 0
        assert user.last_generation_at is None


class TestDatabaseOperations:
    async def test_reset_all_skips_own_key_users(self, database, clock):
        quota = QuotaService(database, clock=clock)
        async with database.session() as session:
            repo = UserRepository(session)
            free = await repo.create(auth_id="free", email="free@example.com")
            free.daily_generation_count = 2
            free.last_generation_at = NOON_IST
            paid = await repo.create(auth_id="paid", email="paid@example.com")
            paid.has_own_credential = True
            paid.daily_generation_count = 7

        assert await quota.reset_all() == 1

        async with database.session() as session:
            repo = UserRepository(session)
            free = await repo.get_by_auth_id("free")
            paid = await repo.get_by_auth_id("paid")

        assert free.daily_generation_count == 0
        assert free.last_generation_at is None
        assert paid.daily_generation_count == 7

    async def test_reset_all_is_idempotent(self, database, clock):
        quota = QuotaService(database, clock=clock)
        async with database.session() as session:
            await UserRepository(session).create(auth_id="a", email="a@example.com")

        assert await quota.reset_all() == 1
        assert await quota.reset_all() == 1

    async def test_usage_statistics(self, database, clock):
        quota = QuotaService(database, clock=clock)
        async with database.session() as session:
            users = UserRepository(session)
            generations = GenerationRepository(session)

            active = await users.create(auth_id="active", email="active@example.com")
            active.daily_generation_count = 1
            active.last_generation_at = NOON_IST - timedelta(hours=1)
            keyed = await users.create(auth_id="keyed", email="keyed@example.com")
            keyed.has_own_credential = True
            await users.create(auth_id="idle", email="idle@example.com")

            await generations.create(active.id, active.auth_id, "a cat", {})
            await generations.create(active.id, active.auth_id, "a hat", {}, is_edit=True)

        stats = await quota.usage_statistics()

        assert stats["total_users"] == 3
        assert stats["users_with_api_key"] == 1
        assert stats["active_users_today"] == 1
        assert stats["today_generations"] == 2
        assert stats["today_edits"] == 1

    async def test_requires_database(self, quota):
        with pytest.raises(RuntimeError):
            await quota.reset_all()

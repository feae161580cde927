"""
Unit tests for the background worker jobs.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from api.workers import (
    WorkerSettings,
    _parse_redis_settings,
    cleanup_generations,
    reset_daily_limits,
    run_cleanup,
    run_daily_reset,
)
from database.models import Generation, GenerationStatus
from database.repositories import GenerationRepository, UserRepository
from services.quota_service import QuotaService
from tests.conftest import NOON_IST


async def _seed_generations(database):
    """One user with a fresh, an old failed, an old orphaned and an old good record."""
    async with database.session() as session:
        user = await UserRepository(session).create(auth_id="worker", email="w@example.com")
        repo = GenerationRepository(session)
        fresh = await repo.create(user.id, user.auth_id, "fresh", {}, image_data="abc")
        failed = await repo.create(
            user.id, user.auth_id, "failed", {}, status=GenerationStatus.FAILED
        )
        orphan = await repo.create(user.id, user.auth_id, "orphan", {})
        kept = await repo.create(user.id, user.auth_id, "kept", {}, image_url="https://x/y.png")
        old_ids = [failed.id, orphan.id, kept.id]

    old = datetime.now(UTC) - timedelta(days=45)
    async with database.session() as session:
        await session.execute(
            update(Generation).where(Generation.id.in_(old_ids)).values(created_at=old)
        )
    return user, fresh


class TestCleanup:
    async def test_removes_failed_and_orphaned(self, database):
        user, fresh = await _seed_generations(database)

        result = await run_cleanup(database, retention_days=30)

        assert result == {"failed": 1, "orphaned": 1}
        async with database.session() as session:
            remaining = await GenerationRepository(session).list_for_user(user.id, limit=10)
        assert sorted(g.prompt for g in remaining) == ["fresh", "kept"]

    async def test_recent_records_survive(self, database):
        await _seed_generations(database)

        result = await run_cleanup(database, retention_days=60)

        assert result == {"failed": 0, "orphaned": 0}

    async def test_task_uses_context(self, database, settings):
        await _seed_generations(database)

        result = await cleanup_generations({"database": database})

        assert result == {"failed": 1, "orphaned": 1}


class TestDailyReset:
    async def test_run_daily_reset(self, database, clock):
        quota = QuotaService(database, clock=clock)
        async with database.session() as session:
            user = await UserRepository(session).create(auth_id="r", email="r@example.com")
            user.daily_generation_count = 2
            user.last_generation_at = NOON_IST

        assert await run_daily_reset(quota) == 1

        async with database.session() as session:
            user = await UserRepository(session).get_by_auth_id("r")
        assert user.daily_generation_count == 0
        assert quota.check_allowed(user).remaining == 2

    async def test_statistics_failure_keeps_reset(self, database, clock, monkeypatch, caplog):
        quota = QuotaService(database, clock=clock)
        async with database.session() as session:
            user = await UserRepository(session).create(auth_id="s", email="s@example.com")
            user.daily_generation_count = 1
        failure = OperationalError("SELECT count(*) FROM users", {}, Exception("db gone"))
        monkeypatch.setattr(quota, "usage_statistics", AsyncMock(side_effect=failure))

        assert await run_daily_reset(quota) == 1

        async with database.session() as session:
            user = await UserRepository(session).get_by_auth_id("s")
        assert user.daily_generation_count == 0
        assert "Failed to collect usage statistics" in caplog.text

    async def test_task_result(self, database, clock):
        quota = QuotaService(database, clock=clock)

        assert await reset_daily_limits({"quota": quota}) == {"users_reset": 0}


class TestWorkerSettings:
    def test_cron_schedule(self):
        reset_job, cleanup_job = WorkerSettings.cron_jobs

        assert reset_job.hour == 0
        assert reset_job.minute == 0
        assert cleanup_job.weekday in ("sun", 6)
        assert cleanup_job.hour == 2

    def test_timezone(self, settings):
        assert WorkerSettings.timezone == ZoneInfo(settings.quota_timezone)

    def test_redis_url_parsing(self, settings):
        redis_settings = _parse_redis_settings()

        assert redis_settings.host == "localhost"
        assert redis_settings.port == 6379
        assert redis_settings.database == 15

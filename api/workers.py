"""
ARQ background worker for Codenex Studio.

Run with:
    arq api.workers.WorkerSettings

Tasks:
    - reset_daily_limits: Zero free-tier daily counters. Runs daily at 00:00
      in the quota timezone and can be triggered via POST /api/cron/reset-daily-limits.
    - cleanup_generations: Delete failed and image-less records past the
      retention period. Runs Sundays at 02:00.
"""

import logging
from datetime import UTC, datetime, timedelta
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from arq import cron
from arq.connections import RedisSettings

from core.config import get_settings
from database import Database
from database.repositories import GenerationRepository
from services.quota_service import QuotaService

logger = logging.getLogger(__name__)


# ── Job bodies ───────────────────────────────────────────────────────────────


async def run_daily_reset(quota: QuotaService) -> int:
    """Reset daily counters, then log today's usage statistics."""
    logger.info("[CRON] Starting daily generation limit reset...")
    updated = await quota.reset_all()
    logger.info(f"[CRON] Reset daily limits for {updated} users")

    # The reset stays committed when statistics fail
    try:
        stats = await quota.usage_statistics()
    except Exception as e:
        logger.error(f"[CRON] Failed to collect usage statistics: {e}")
        return updated

    logger.info(
        "[CRON] Usage statistics: "
        f"total_users={stats['total_users']}, "
        f"users_with_api_key={stats['users_with_api_key']}, "
        f"active_users_today={stats['active_users_today']}, "
        f"today_generations={stats['today_generations']}, "
        f"today_edits={stats['today_edits']}"
    )
    return updated


async def run_cleanup(
    database: Database,
    retention_days: int = 30,
    now: datetime | None = None,
) -> dict:
    """
    Delete stale generation records.

    Removes records with status failed, and records with neither an image URL
    nor inline data, created before the retention cutoff.
    """
    cutoff = (now or datetime.now(UTC)) - timedelta(days=retention_days)
    logger.info(f"[CRON] Cleaning up generations created before {cutoff.isoformat()}")

    async with database.session() as session:
        repo = GenerationRepository(session)
        failed = await repo.delete_failed_before(cutoff)
        orphaned = await repo.delete_orphaned_before(cutoff)

    logger.info(f"[CRON] Cleanup removed {failed} failed and {orphaned} orphaned generations")
    return {"failed": failed, "orphaned": orphaned}


# ── Lifecycle hooks ──────────────────────────────────────────────────────────


async def startup(ctx: dict) -> None:
    """Initialise the database and quota service for the worker."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)
    logger.info("ARQ worker starting up...")

    database = Database.from_settings(settings)
    await database.connect()
    logger.info("Database initialized")

    ctx["database"] = database
    ctx["quota"] = QuotaService(
        database=database,
        daily_limit=settings.free_tier_daily_limit,
        timezone=settings.quota_timezone,
    )


async def shutdown(ctx: dict) -> None:
    """Clean up resources on worker shutdown."""
    logger.info("ARQ worker shutting down...")
    database: Database | None = ctx.get("database")
    if database is not None:
        await database.close()
    logger.info("Database connection closed")


# ── Tasks ────────────────────────────────────────────────────────────────────


async def reset_daily_limits(ctx: dict) -> dict:
    """Cron task: reset free-tier daily limits."""
    updated = await run_daily_reset(ctx["quota"])
    return {"users_reset": updated}


async def cleanup_generations(ctx: dict) -> dict:
    """Cron task: remove stale generation records."""
    return await run_cleanup(ctx["database"], get_settings().cleanup_retention_days)


# ── ARQ configuration ───────────────────────────────────────────────────────


def _parse_redis_settings() -> RedisSettings:
    """Parse REDIS_URL into arq RedisSettings."""
    url = get_settings().redis_url
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or 0),
        password=parsed.password,
    )


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [reset_daily_limits, cleanup_generations]

    cron_jobs = [
        cron(reset_daily_limits, hour=0, minute=0, run_at_startup=False),
        cron(cleanup_generations, weekday="sun", hour=2, minute=0, run_at_startup=False),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = _parse_redis_settings()

    # Cron times are interpreted in the quota timezone
    timezone = ZoneInfo(get_settings().quota_timezone)

    max_jobs = 2
    job_timeout = 600

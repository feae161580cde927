"""
FastAPI dependency injection for services.

Services are built once at startup (see api.main.lifespan) and stored on
app.state; endpoints receive them through these dependencies.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, Header, Request

from core.config import Settings, get_settings
from core.exceptions import AuthorizationError
from database import Database
from services.credentials import CredentialResolver
from services.generation_service import GenerationService
from services.providers import GeminiImageProvider, ImageProvider
from services.quota_service import QuotaService
from services.storage import StorageProvider, create_storage
from services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything the endpoints need, wired together."""

    database: Database
    quota: QuotaService
    credentials: CredentialResolver
    generation: GenerationService
    users: UserService
    storage: StorageProvider | None = None


def build_services(
    settings: Settings,
    database: Database,
    provider: ImageProvider | None = None,
    storage: StorageProvider | None = None,
    clock: Callable[[], datetime] | None = None,
) -> ServiceContainer:
    """
    Wire services from settings.

    Args:
        settings: Application settings
        database: A connected Database
        provider: Image provider (default: Gemini from settings)
        storage: Durable storage (default: backend selected in settings)
        clock: Current-time source for the quota day boundary
    """
    provider = provider or GeminiImageProvider.from_settings(settings)
    if storage is None:
        storage = create_storage(settings)

    quota = QuotaService(
        database=database,
        daily_limit=settings.free_tier_daily_limit,
        timezone=settings.quota_timezone,
        clock=clock,
    )
    credentials = CredentialResolver(
        shared_api_key=settings.gemini_api_key,
        secret=settings.encryption_secret,
    )
    generation = GenerationService(
        database=database,
        provider=provider,
        quota=quota,
        credentials=credentials,
        storage=storage,
        border_threshold=settings.border_threshold,
        storage_timeout=settings.storage_timeout_seconds,
    )
    users = UserService(database=database, credentials=credentials, quota=quota)

    return ServiceContainer(
        database=database,
        quota=quota,
        credentials=credentials,
        generation=generation,
        users=users,
        storage=storage,
    )


def get_services(request: Request) -> ServiceContainer:
    """Get the service container built at startup."""
    return request.app.state.services


def get_generation_service(
    services: ServiceContainer = Depends(get_services),
) -> GenerationService:
    return services.generation


def get_user_service(services: ServiceContainer = Depends(get_services)) -> UserService:
    return services.users


def get_quota_service(services: ServiceContainer = Depends(get_services)) -> QuotaService:
    return services.quota


async def verify_cron_secret(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
) -> None:
    """
    Guard manual cron triggers.

    When no CRON_SECRET is configured the endpoints are only open outside
    production.
    """
    settings = get_settings()
    if not settings.cron_secret:
        if settings.is_production:
            raise AuthorizationError("Cron endpoints are disabled")
        return
    if x_cron_secret != settings.cron_secret:
        logger.warning("Cron endpoint called with an invalid secret")
        raise AuthorizationError("Invalid cron secret")

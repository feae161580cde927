"""
FastAPI application entry point.

This is the main entry point for the Codenex Studio API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import build_services
from api.middleware import setup_exception_handlers
from api.routers import (
    cron_router,
    generate_router,
    health_router,
    history_router,
    images_router,
    quota_router,
    users_router,
)
from core.config import get_settings
from database import Database

# Configure logging
_settings = get_settings()
logging.basicConfig(
    level=_settings.log_level.upper(),
    format=_settings.log_format,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the database and services on startup and closes them on shutdown.
    """
    settings = get_settings()

    # ============ Startup ============
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    database = Database.from_settings(settings)
    try:
        await database.connect()
        if settings.is_production:
            logger.info("Schema is managed by Alembic migrations (alembic upgrade head)")
        else:
            await database.create_tables()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    app.state.services = build_services(settings, database)

    if not settings.has_shared_credential:
        logger.warning("GEMINI_API_KEY not set: only users with their own key can generate")
    if app.state.services.storage is None:
        logger.info("Durable storage not configured, images are stored inline")

    logger.info("Application startup complete")

    yield

    # ============ Shutdown ============
    logger.info("Shutting down application...")
    await database.close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Quota-aware image generation API backed by Google Gemini",
        version=settings.app_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # ============ Middleware ============

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # ============ Exception Handlers ============
    setup_exception_handlers(app)

    # ============ Routers ============

    # Health check
    app.include_router(health_router, prefix="/api")

    # Users and own API keys
    app.include_router(users_router, prefix="/api")

    # Image generation
    app.include_router(generate_router, prefix="/api")

    # Quota
    app.include_router(quota_router, prefix="/api")

    # History management
    app.include_router(history_router, prefix="/api")

    # Locally stored images
    app.include_router(images_router, prefix="/api")

    # Scheduled jobs (manual triggers)
    app.include_router(cron_router, prefix="/api")

    # ============ Root Endpoint ============

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if not settings.is_production else None,
            "health": "/api/health",
        }

    return app


# Create application instance
app = create_app()


def run():
    """Run the application with uvicorn (for development)."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

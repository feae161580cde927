"""
API routers for different endpoints.
"""

from .cron import router as cron_router
from .generate import router as generate_router
from .health import router as health_router
from .history import router as history_router
from .images import router as images_router
from .quota import router as quota_router
from .users import router as users_router

__all__ = [
    "cron_router",
    "generate_router",
    "health_router",
    "history_router",
    "images_router",
    "quota_router",
    "users_router",
]

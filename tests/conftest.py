"""
Pytest configuration and fixtures.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from io import BytesIO

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "true"
os.environ["GEMINI_API_KEY"] = "shared-test-key"
os.environ["ENCRYPTION_SECRET"] = "test-encryption-secret-for-testing-only"
os.environ["STORAGE_BACKEND"] = "none"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["CRON_SECRET"] = "test-cron-secret"

from core.config import get_settings  # noqa: E402
from core.exceptions import StorageError  # noqa: E402
from database import Database  # noqa: E402
from services.providers.base import (  # noqa: E402
    ERROR_TYPE_INVALID_KEY,
    GenerationRequest,
    GenerationResult,
)
from services.storage.base import StorageProvider, StoredImage, build_key  # noqa: E402

# 12:00 in Asia/Kolkata
NOON_IST = datetime(2025, 6, 15, 6, 30, tzinfo=UTC)


# ============ Image Helpers ============


def make_png(
    size: tuple[int, int] = (100, 100),
    color: tuple[int, int, int] = (255, 255, 255),
    box: tuple[int, int, int, int] | None = None,
    box_color: tuple[int, int, int] = (200, 30, 30),
    fmt: str = "PNG",
) -> bytes:
    """Encode a solid image, optionally with a filled box (x0, y0, x1, y1 inclusive)."""
    img = Image.new("RGB", size, color=color)
    if box:
        x0, y0, x1, y1 = box
        img.paste(box_color, (x0, y0, x1 + 1, y1 + 1))
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def decode(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


# ============ Clock ============


class FixedClock:
    """Settable clock for day-boundary tests."""

    def __init__(self, now: datetime = NOON_IST):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


# ============ Fake Provider ============


class FakeProvider:
    """In-memory ImageProvider recording every request."""

    name = "fake"
    default_model = "gemini-2.5-flash-image-preview"

    def __init__(self):
        self.requests: list[GenerationRequest] = []
        self.results: list[GenerationResult] = []

    def queue(self, result: GenerationResult) -> None:
        self.results.append(result)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        if self.results:
            return self.results.pop(0)
        return image_result()


def image_result(*images: bytes) -> GenerationResult:
    """A successful provider result. Defaults to one framed 200x200 image."""
    if not images:
        images = (make_png((200, 200), box=(20, 20, 179, 179)),)
    return GenerationResult(success=True, images=list(images), provider="fake")


def text_result(text: str) -> GenerationResult:
    return GenerationResult(success=True, text_response=text, provider="fake")


def invalid_key_result() -> GenerationResult:
    return GenerationResult(
        success=False,
        error="400 INVALID_ARGUMENT. API key not valid. Please pass a valid API key.",
        error_type=ERROR_TYPE_INVALID_KEY,
        status_code=400,
        provider="fake",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


# ============ Fake Storage ============


class MemoryStorage(StorageProvider):
    """Storage backend keeping uploads in a dict."""

    def __init__(self, fail: bool = False):
        self.objects: dict[str, bytes] = {}
        self.fail = fail
        self.deleted: list[str] = []

    @property
    def name(self) -> str:
        return "memory"

    async def upload(self, data: bytes, folder: str, content_type: str = "image/png") -> StoredImage:
        if self.fail:
            raise StorageError("upload refused")
        key = build_key(folder, content_type)
        self.objects[key] = data
        return StoredImage(key=key, url=self.get_public_url(key), size=len(data))

    async def delete(self, key: str) -> bool:
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None

    def get_public_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


# ============ Settings / Database ============


@pytest.fixture
def settings():
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """A fresh SQLite database file per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def build(settings, database, provider, clock) -> Callable:
    """Build a ServiceContainer; pass storage= to enable durable storage."""
    from api.dependencies import build_services

    def _build(storage: StorageProvider | None = None):
        return build_services(settings, database, provider=provider, storage=storage, clock=clock)

    return _build


@pytest.fixture
def services(build):
    return build()


# ============ App Fixtures ============


@pytest.fixture
async def async_client(services) -> AsyncGenerator[AsyncClient, None]:
    """Asynchronous test client with test services installed."""
    from api.main import app

    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def user_headers() -> dict[str, str]:
    """Identity headers as forwarded by the gateway."""
    return {
        "X-User-Id": "auth0|user-1",
        "X-User-Email": "Alice@Example.com",
        "X-User-Name": "Alice",
    }


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"X-Cron-Secret": "test-cron-secret"}

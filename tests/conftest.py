from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.redis import redis_cache
from app.main import app
from app.services.media import LocalObjectStore, media_service

# One in-memory database per test; StaticPool keeps the single connection alive
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def db():
    """Create a fresh database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture(autouse=True)
def override_get_db(db: AsyncSession):
    """Override the get_db dependency to use test database."""

    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    """Run every test against an always-missing cache."""
    monkeypatch.setattr(redis_cache, "get_json", AsyncMock(return_value=None))
    monkeypatch.setattr(redis_cache, "set_json", AsyncMock(return_value=True))
    return redis_cache


@pytest.fixture(autouse=True)
def media_root(tmp_path, monkeypatch):
    """Store uploaded media under the test's temporary directory."""
    root = tmp_path / "media"
    monkeypatch.setattr(
        media_service,
        "store",
        LocalObjectStore(root=str(root), base_url="http://test/media"),
    )
    return root


def get_auth_headers(token: str = "dev") -> dict[str, str]:
    """Bearer header for tests that exercise the real auth dependency."""
    return {"Authorization": f"Bearer {token}"}


pytest_plugins = ["tests.fixtures.onboarding_fixtures"]

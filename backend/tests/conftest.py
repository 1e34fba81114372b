"""Shared fixtures: in-memory SQLite per test, and an API client bound to it."""
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from sitebook.database import Base, get_db
from sitebook import models  # noqa: F401


@pytest.fixture
async def async_engine_and_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield engine, async_session
    await engine.dispose()


@pytest.fixture
async def db(async_engine_and_session):
    _, async_session = async_engine_and_session
    async with async_session() as session:
        yield session


@pytest.fixture
async def client(async_engine_and_session, tmp_path, monkeypatch):
    """ASGI client; lifespan does not run, so branding is set on app.state directly."""
    from sitebook import config as app_config
    from sitebook.branding import BrandingConfig
    from sitebook.main import app

    _, async_session = async_engine_and_session
    monkeypatch.setattr(app_config.settings, "upload_dir", tmp_path / "uploads")
    monkeypatch.setattr(app_config.settings, "backup_dir", tmp_path / "backup")

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.branding = BrandingConfig()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

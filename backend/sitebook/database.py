"""
Database engine and session (async SQLAlchemy)
- PostgreSQL URLs are forced onto the asyncpg driver (postgresql+asyncpg://)
- Production schema is owned by Alembic; create_all only runs when auto_create_schema is on
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sitebook.config import settings

logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """Hosting providers hand out postgres:// or postgresql://; async needs postgresql+asyncpg://"""
    db_url = str(url or "").strip()
    if db_url.startswith("postgres://"):
        return "postgresql+asyncpg://" + db_url[len("postgres://"):]
    if db_url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + db_url[len("postgresql://"):]
    if db_url.startswith("postgresql+psycopg2://"):
        return "postgresql+asyncpg://" + db_url[len("postgresql+psycopg2://"):]
    return db_url


db_url = normalize_database_url(settings.database_url)

engine = create_async_engine(
    db_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    if not settings.auto_create_schema:
        return
    # models must be imported so every table is registered on Base.metadata
    from sitebook import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database schema ensured at %s", db_url.split("@")[-1])
